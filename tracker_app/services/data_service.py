"""
Data service: validated, converted collections and write helpers.

Reads go repository -> validator -> converter so routes and the sync
reconciler only ever see domain objects. Writes translate domain fields back
into list columns for the active naming scheme.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Iterable, Mapping, TypeVar

from tracker_app.errors import NotFoundError
from tracker_app.services import validators
from tracker_app.services.converters import (
    ConsentRecord,
    Entry,
    Group,
    Profile,
    Regular,
    Session,
    convert_entry,
    convert_group,
    convert_profile,
    convert_record,
    convert_regular,
    convert_session,
)
from tracker_app.storage.naming import RECORD_PROFILE_LOOKUP
from tracker_app.storage.repositories import Repositories
from tracker_app.utils.identifiers import to_slug

T = TypeVar("T")


class DataService:
    def __init__(self, repositories: Repositories, *, logger: logging.Logger | None = None) -> None:
        self.repos = repositories
        self.naming = repositories.naming
        self.logger = logger or logging.getLogger(__name__)

    # Reads ----------------------------------------------------------------------

    def _load(
        self,
        raw: Iterable[Mapping[str, Any]],
        validator: Callable[[Any], bool],
        converter: Callable[[Mapping[str, Any]], T],
        label: str,
    ) -> list[T]:
        converted: list[T] = []
        for record in validators.validate_collection(raw, validator, label, log=self.logger):
            try:
                converted.append(converter(record))
            except (KeyError, TypeError, ValueError) as exc:
                self.logger.warning(
                    "Could not convert %s record",
                    label,
                    extra={"entity": label, "record_id": record.get("ID"), "error": str(exc)},
                )
        return converted

    def groups(self) -> list[Group]:
        return self._load(self.repos.groups.get_all(), validators.validate_group, convert_group, "Group")

    def sessions(self) -> list[Session]:
        return self._load(
            self.repos.sessions.get_all(),
            validators.validate_session,
            lambda raw: convert_session(raw, self.naming),
            "Session",
        )

    def entries(self) -> list[Entry]:
        return self._load(
            self.repos.entries.get_all(),
            validators.validate_entry,
            lambda raw: convert_entry(raw, self.naming),
            "Entry",
        )

    def profiles(self) -> list[Profile]:
        return self._load(self.repos.profiles.get_all(), validators.validate_profile, convert_profile, "Profile")

    def regulars(self) -> list[Regular]:
        return self._load(
            self.repos.regulars.get_all(),
            validators.validate_regular,
            lambda raw: convert_regular(raw, self.naming),
            "Regular",
        )

    def records(self) -> list[ConsentRecord]:
        return self._load(self.repos.records.get_all(), validators.validate_record, convert_record, "Record")

    @property
    def records_available(self) -> bool:
        return self.repos.records.available

    # Lookups --------------------------------------------------------------------

    @staticmethod
    def find_group_by_key(groups: Iterable[Group], key: str) -> Group | None:
        wanted = (key or "").strip().lower()
        return next((group for group in groups if group.key == wanted), None)

    def require_group(self, groups: Iterable[Group], key: str) -> Group:
        group = self.find_group_by_key(groups, key)
        if group is None:
            raise NotFoundError("Group not found")
        return group

    @staticmethod
    def find_session(sessions: Iterable[Session], group_id: int, date_value: str) -> Session | None:
        """Match a session by group and date prefix (``2025-04-02`` or a full timestamp)."""

        prefix = (date_value or "")[:10]
        return next(
            (session for session in sessions if session.group_id == group_id and session.date.startswith(prefix)),
            None,
        )

    def require_session(self, sessions: Iterable[Session], group_id: int, date_value: str) -> Session:
        session = self.find_session(sessions, group_id, date_value)
        if session is None:
            raise NotFoundError("Session not found")
        return session

    @staticmethod
    def find_profile_by_slug(profiles: Iterable[Profile], slug: str) -> Profile | None:
        wanted = (slug or "").lower()
        return next((profile for profile in profiles if to_slug(profile.name) == wanted), None)

    def require_profile(self, profiles: Iterable[Profile], slug: str) -> Profile:
        profile = self.find_profile_by_slug(profiles, slug)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    # Groups ---------------------------------------------------------------------

    def create_group(
        self,
        key: str,
        *,
        name: str | None = None,
        description: str | None = None,
        external_series_id: str | None = None,
    ) -> int:
        fields: dict[str, Any] = {"Title": key}
        if name:
            fields["Name"] = name
        if description:
            fields["Description"] = description
        if external_series_id:
            fields["EventbriteSeriesID"] = external_series_id
        return self.repos.groups.create(fields)

    def update_group(
        self,
        group_id: int,
        *,
        display_name: str | None = None,
        description: str | None = None,
        external_series_id: str | None = None,
    ) -> None:
        fields: dict[str, Any] = {}
        if display_name is not None:
            fields["Name"] = display_name
        if description is not None:
            fields["Description"] = description
        if external_series_id is not None:
            fields["EventbriteSeriesID"] = external_series_id
        self.repos.groups.update_fields(group_id, fields)

    def delete_group(self, group_id: int) -> None:
        self.repos.groups.delete(group_id)

    # Sessions -------------------------------------------------------------------

    def create_session(
        self,
        group: Group,
        session_date: date | str,
        *,
        name: str | None = None,
        notes: str | None = None,
        external_event_id: str | None = None,
    ) -> int:
        date_text = session_date.isoformat() if isinstance(session_date, date) else str(session_date)[:10]
        fields: dict[str, Any] = {
            "Title": f"{date_text} {group.lookup_key}".strip(),
            "Date": date_text,
            self.naming.group_lookup: str(group.id),
        }
        if name:
            fields["Name"] = name
        if notes:
            fields[self.naming.session_notes] = notes
        if external_event_id:
            fields["EventbriteEventID"] = external_event_id
        return self.repos.sessions.create(fields)

    def update_session(
        self,
        session_id: int,
        *,
        display_name: str | None = None,
        notes: str | None = None,
        external_event_id: str | None = None,
        session_date: str | None = None,
    ) -> None:
        fields: dict[str, Any] = {}
        if display_name is not None:
            fields["Name"] = display_name
        if notes is not None:
            fields[self.naming.session_notes] = notes
        if external_event_id is not None:
            fields["EventbriteEventID"] = external_event_id
        if session_date is not None:
            fields["Date"] = session_date
        self.repos.sessions.update_fields(session_id, fields)

    def delete_session(self, session_id: int) -> None:
        self.repos.sessions.delete(session_id)

    # Entries --------------------------------------------------------------------

    def create_entry(self, session_id: int, profile_id: int, *, notes: str | None = None) -> int:
        fields: dict[str, Any] = {
            self.naming.session_lookup: str(session_id),
            self.naming.profile_lookup: str(profile_id),
        }
        if notes:
            fields["Notes"] = notes
        return self.repos.entries.create(fields)

    def update_entry(
        self,
        entry_id: int,
        *,
        checked_in: bool | None = None,
        count: int | None = None,
        hours: float | None = None,
        notes: str | None = None,
        profile_id: int | None = None,
    ) -> None:
        fields: dict[str, Any] = {}
        if checked_in is not None:
            fields["Checked"] = checked_in
        if count is not None:
            fields["Count"] = count
        if hours is not None:
            fields["Hours"] = hours
        if notes is not None:
            fields["Notes"] = notes
        if profile_id is not None:
            fields[self.naming.profile_lookup] = str(profile_id)
        self.repos.entries.update_fields(entry_id, fields)

    def delete_entry(self, entry_id: int) -> None:
        self.repos.entries.delete(entry_id)

    # Profiles -------------------------------------------------------------------

    def create_profile(self, name: str, *, email: str | None = None, match_name: str | None = None) -> int:
        fields: dict[str, Any] = {"Title": name}
        if email:
            fields["Email"] = email
        if match_name:
            fields["MatchName"] = match_name
        return self.repos.profiles.create(fields)

    def update_profile(
        self,
        profile_id: int,
        *,
        name: str | None = None,
        email: str | None = None,
        match_name: str | None = None,
        external_username: str | None = None,
        is_group: bool | None = None,
    ) -> None:
        fields: dict[str, Any] = {}
        if name is not None:
            fields["Title"] = name
        if email is not None:
            fields["Email"] = email
        if match_name is not None:
            fields["MatchName"] = match_name
        if external_username is not None:
            fields["User"] = external_username
        if is_group is not None:
            fields["IsGroup"] = is_group
        self.repos.profiles.update_fields(profile_id, fields)

    def delete_profile(self, profile_id: int) -> None:
        self.repos.profiles.delete(profile_id)

    # Regulars -------------------------------------------------------------------

    def create_regular(self, profile_id: int, group_id: int) -> int:
        return self.repos.regulars.create(
            {
                self.naming.profile_lookup: str(profile_id),
                self.naming.group_lookup: str(group_id),
            }
        )

    def move_regular(self, regular_id: int, profile_id: int) -> None:
        self.repos.regulars.update_fields(regular_id, {self.naming.profile_lookup: str(profile_id)})

    def delete_regular(self, regular_id: int) -> None:
        self.repos.regulars.delete(regular_id)

    # Consent records ------------------------------------------------------------

    def create_record(self, profile_id: int, record_type: str, status: str, record_date: str) -> int:
        return self.repos.records.create(
            {
                RECORD_PROFILE_LOOKUP: str(profile_id),
                "Type": record_type,
                "Status": status,
                "Date": record_date,
            }
        )

    def update_record(
        self,
        record_id: int,
        *,
        status: str | None = None,
        record_date: str | None = None,
        profile_id: int | None = None,
    ) -> None:
        fields: dict[str, Any] = {}
        if status is not None:
            fields["Status"] = status
        if record_date is not None:
            fields["Date"] = record_date
        if profile_id is not None:
            fields[RECORD_PROFILE_LOOKUP] = str(profile_id)
        self.repos.records.update_fields(record_id, fields)

    def upsert_record(
        self,
        records: list[ConsentRecord],
        profile_id: int,
        record_type: str,
        status: str,
        record_date: str,
    ) -> tuple[int, bool]:
        """
        Create or overwrite the single ``(profile, type)`` record.

        ``records`` is updated in place so repeated calls within one request
        see earlier writes. Returns ``(record_id, created)``.
        """

        existing = next(
            (record for record in records if record.profile_id == profile_id and record.type == record_type),
            None,
        )
        if existing is not None:
            self.update_record(existing.id, status=status, record_date=record_date)
            existing.status = status
            existing.date = record_date
            return existing.id, False
        record_id = self.create_record(profile_id, record_type, status, record_date)
        records.append(
            ConsentRecord(id=record_id, profile_id=profile_id, type=record_type, status=status, date=record_date)
        )
        return record_id, True

    def delete_record(self, record_id: int) -> None:
        self.repos.records.delete(record_id)

    def record_choices(self) -> dict[str, list[str]]:
        return {
            "types": self.repos.records.choice_values("Type"),
            "statuses": self.repos.records.choice_values("Status"),
        }

    # Cache ----------------------------------------------------------------------

    def clear_cache(self) -> None:
        self.repos.cache.clear()
        self.logger.info("Collection cache cleared")

    def cache_stats(self) -> dict[str, object]:
        return self.repos.cache.stats()
