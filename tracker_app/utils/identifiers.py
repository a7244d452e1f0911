"""
Identifier, slug and numeric helpers shared by converters and routes.

List stores hand lookup references back as strings ("12"), hours as strings
or numbers, and display names in whatever form an operator typed them. These
helpers coerce those values without ever raising.
"""

from __future__ import annotations

import math
import re

_APOSTROPHES = re.compile(r"['‘’‛`]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_INTEGER = re.compile(r"^\s*[+-]?\d+")


def parse_lookup_id(raw: object | None) -> int | None:
    """Return the numeric id of a lookup reference, or ``None`` when absent."""

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None
    text = str(raw)
    if not text.strip():
        return None
    match = _INTEGER.match(text)
    if match is None:
        return None
    return int(match.group(0))


def to_slug(name: str | None) -> str:
    """
    Convert a display name into a URL-safe slug.

    ``"O'Brien"`` becomes ``"obrien"`` and ``"Mary  Smith"`` becomes
    ``"mary-smith"``. Slugs are not unique; two profiles with the same name
    share one.
    """

    if not name:
        return ""
    slug = _APOSTROPHES.sub("", str(name).lower())
    slug = _NON_ALNUM.sub("-", slug)
    return slug.strip("-")


def parse_hours(raw: object | None) -> float:
    """Coerce an hours value to float, returning 0 for anything unparseable."""

    if raw is None or isinstance(raw, bool):
        return 0.0
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


def round_hours(value: float) -> float:
    """Round an hours total to one decimal place, halves rounding up."""

    return math.floor(value * 10 + 0.5) / 10
