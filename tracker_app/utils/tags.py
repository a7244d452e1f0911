"""
Hashtag-style annotations carried in free-text entry notes.

Tags are matched case-insensitively on word boundaries so ``#new`` matches
``"#New #Child"`` but not ``"#Newcomer"``.
"""

from __future__ import annotations

import re

TAG_CHILD = "#Child"
TAG_REGULAR = "#Regular"
TAG_NEW = "#New"
TAG_DIG_LEAD = "#DigLead"
TAG_FIRST_AIDER = "#FirstAider"
TAG_CSR = "#CSR"
TAG_LATE = "#Late"
TAG_NO_PHOTO = "#NoPhoto"
TAG_EVENTBRITE = "#Eventbrite"

KNOWN_TAGS = (
    TAG_CHILD,
    TAG_REGULAR,
    TAG_NEW,
    TAG_DIG_LEAD,
    TAG_FIRST_AIDER,
    TAG_CSR,
    TAG_LATE,
    TAG_NO_PHOTO,
    TAG_EVENTBRITE,
)

_TAG_PATTERN = re.compile(r"#(\w+)")


def _tag_name(tag: str) -> str:
    return tag.lstrip("#")


def parse_tags(notes: str | None) -> set[str]:
    """Return the lower-cased tags found in ``notes`` (``{"#new", "#child"}``)."""

    if not notes:
        return set()
    return {f"#{match.lower()}" for match in _TAG_PATTERN.findall(notes)}


def has_tag(notes: str | None, tag: str) -> bool:
    if not notes:
        return False
    pattern = re.compile(rf"#{re.escape(_tag_name(tag))}\b", re.IGNORECASE)
    return pattern.search(notes) is not None


def append_tag(notes: str | None, tag: str) -> str:
    """Append ``tag`` to ``notes`` unless it is already present."""

    current = (notes or "").strip()
    if has_tag(current, tag):
        return current
    return f"{current} {tag}".strip()


def join_tags(tags: list[str] | tuple[str, ...]) -> str:
    return " ".join(tag for tag in tags if tag)
