"""
Structural guards for fetched list records.

The store can return partially-shaped items (for example while a column is
being migrated). A record that fails its guard is logged and dropped; the
request carries on with the rest of the collection.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from tracker_app.metrics import record_invalid_records
from tracker_app.utils.financial_year import parse_date

logger = logging.getLogger(__name__)

Validator = Callable[[Any], bool]


def _has_system_fields(raw: Any) -> bool:
    if not isinstance(raw, Mapping):
        return False
    record_id = raw.get("ID")
    if not isinstance(record_id, int) or isinstance(record_id, bool):
        return False
    return isinstance(raw.get("Created"), str) and isinstance(raw.get("Modified"), str)


def validate_group(raw: Any) -> bool:
    return _has_system_fields(raw) and isinstance(raw.get("Title"), str)


def validate_session(raw: Any) -> bool:
    if not _has_system_fields(raw):
        return False
    value = raw.get("Date")
    return isinstance(value, str) and parse_date(value) is not None


def validate_entry(raw: Any) -> bool:
    return _has_system_fields(raw)


def validate_profile(raw: Any) -> bool:
    return _has_system_fields(raw)


def validate_regular(raw: Any) -> bool:
    return _has_system_fields(raw)


def validate_record(raw: Any) -> bool:
    return _has_system_fields(raw)


def validate_collection(
    records: Iterable[Any],
    validator: Validator,
    label: str,
    *,
    log: logging.Logger | None = None,
) -> list[Any]:
    """Return the records that pass ``validator``, logging each rejection."""

    log = log or logger
    valid: list[Any] = []
    rejected = 0
    for index, record in enumerate(records):
        if validator(record):
            valid.append(record)
            continue
        rejected += 1
        record_id = record.get("ID") if isinstance(record, Mapping) else None
        log.warning(
            "Invalid %s at index %s",
            label,
            index,
            extra={"entity": label, "index": index, "record_id": record_id},
        )
    record_invalid_records(label, rejected)
    return valid
