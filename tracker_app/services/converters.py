"""
Convert raw list records into domain objects.

The list columns differ between the legacy and clean deployments; the
``NamingScheme`` passed in is the only thing that knows which column holds a
lookup. Groups keep the ``Title`` column as their routing key and prefer
``Name`` for display: ``Title`` may be a shorthand like "Sat" while ``Name`` is
"Saturday Dig".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping

from tracker_app.storage.naming import RECORD_PROFILE_LOOKUP, NamingScheme
from tracker_app.utils.financial_year import financial_year_of, parse_date
from tracker_app.utils.identifiers import parse_hours, parse_lookup_id, to_slug

UNTITLED_SESSION = "Untitled Session"
UNKNOWN_VOLUNTEER = "Unknown Volunteer"


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


@dataclass
class Group:
    id: int
    lookup_key: str
    display_name: str
    description: str | None = None
    external_series_id: str | None = None

    @property
    def key(self) -> str:
        return self.lookup_key.lower()


@dataclass
class Session:
    id: int
    lookup_key: str
    display_name: str
    date: str
    session_date: date
    notes: str | None = None
    group_id: int | None = None
    group_label: str | None = None
    external_event_id: str | None = None

    @property
    def financial_year(self) -> int:
        return financial_year_of(self.session_date)

    @property
    def date_key(self) -> str:
        return self.session_date.isoformat()


@dataclass
class Profile:
    id: int
    name: str
    email: str | None = None
    match_name: str | None = None
    is_group: bool = False
    external_username: str | None = None

    @property
    def slug(self) -> str:
        return to_slug(self.name)


@dataclass
class Entry:
    id: int
    session_id: int | None
    profile_id: int | None
    profile_name: str | None = None
    count: int = 1
    checked_in: bool = False
    hours: float = 0.0
    notes: str | None = None


@dataclass
class Regular:
    id: int
    profile_id: int | None
    group_id: int | None
    profile_name: str | None = None
    group_name: str | None = None


@dataclass
class ConsentRecord:
    id: int
    profile_id: int | None
    type: str
    status: str
    date: str | None = None
    profile_name: str | None = None


def convert_group(raw: Mapping[str, Any]) -> Group:
    lookup_key = _text(raw.get("Title")) or ""
    return Group(
        id=int(raw["ID"]),
        lookup_key=lookup_key,
        display_name=_text(raw.get("Name")) or lookup_key,
        description=_text(raw.get("Description")),
        external_series_id=_text(raw.get("EventbriteSeriesID")),
    )


def convert_session(raw: Mapping[str, Any], naming: NamingScheme) -> Session:
    raw_date = str(raw["Date"])
    session_date = parse_date(raw_date)
    if session_date is None:
        raise ValueError(f"Session {raw.get('ID')} has an unparseable date {raw_date!r}")
    return Session(
        id=int(raw["ID"]),
        lookup_key=_text(raw.get("Title")) or "",
        display_name=_text(raw.get("Name")) or _text(raw.get("Title")) or UNTITLED_SESSION,
        date=raw_date,
        session_date=session_date,
        notes=_text(raw.get(naming.session_notes)),
        group_id=parse_lookup_id(raw.get(naming.group_lookup)),
        group_label=_text(raw.get(naming.group_display)),
        external_event_id=_text(raw.get("EventbriteEventID")),
    )


def convert_profile(raw: Mapping[str, Any]) -> Profile:
    return Profile(
        id=int(raw["ID"]),
        name=_text(raw.get("Title")) or UNKNOWN_VOLUNTEER,
        email=_text(raw.get("Email")),
        match_name=_text(raw.get("MatchName")),
        is_group=_bool(raw.get("IsGroup")),
        external_username=_text(raw.get("User")),
    )


def convert_entry(raw: Mapping[str, Any], naming: NamingScheme) -> Entry:
    raw_count = raw.get("Count")
    count = 1
    if raw_count not in (None, ""):
        try:
            count = int(float(raw_count))
        except (TypeError, ValueError):
            count = 1
    return Entry(
        id=int(raw["ID"]),
        session_id=parse_lookup_id(raw.get(naming.session_lookup)),
        profile_id=parse_lookup_id(raw.get(naming.profile_lookup)),
        profile_name=_text(raw.get(naming.profile_display)),
        count=count,
        checked_in=_bool(raw.get("Checked")),
        hours=parse_hours(raw.get("Hours")),
        notes=_text(raw.get("Notes")),
    )


def convert_regular(raw: Mapping[str, Any], naming: NamingScheme) -> Regular:
    return Regular(
        id=int(raw["ID"]),
        profile_id=parse_lookup_id(raw.get(naming.profile_lookup)),
        group_id=parse_lookup_id(raw.get(naming.group_lookup)),
        profile_name=_text(raw.get(naming.profile_display)),
        group_name=_text(raw.get(naming.group_display)),
    )


def convert_record(raw: Mapping[str, Any]) -> ConsentRecord:
    return ConsentRecord(
        id=int(raw["ID"]),
        profile_id=parse_lookup_id(raw.get(RECORD_PROFILE_LOOKUP)),
        type=_text(raw.get("Type")) or "",
        status=_text(raw.get("Status")) or "",
        date=_text(raw.get("Date")),
        profile_name=_text(raw.get("Profile")),
    )
