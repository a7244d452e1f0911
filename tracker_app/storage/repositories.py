"""
One repository per remote list.

Repositories know the list identifier, the columns to select under the active
naming scheme, and the cache key that every write invalidates. They return raw
flat records; validation and conversion happen in the data service.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, Sequence

from tracker_app.errors import StorageNotConfigured
from tracker_app.storage.cache import CollectionCache
from tracker_app.storage.naming import RECORD_PROFILE_DISPLAY, RECORD_PROFILE_LOOKUP, NamingScheme

SYSTEM_FIELDS = ("ID", "Title", "Created", "Modified")


class ListStore(Protocol):
    """Primitives the repositories need from the remote store."""

    def fetch_collection(
        self,
        collection_id: str,
        select_fields: Sequence[str],
        filter: str | None = None,
        order_by: str | None = None,
    ) -> list[dict[str, Any]]: ...

    def create_record(self, collection_id: str, fields: Mapping[str, Any]) -> int: ...

    def update_record(self, collection_id: str, record_id: int, fields: Mapping[str, Any]) -> None: ...

    def delete_record(self, collection_id: str, record_id: int) -> None: ...

    def list_choice_values(self, collection_id: str, column_name: str) -> list[str]: ...


class ListRepository:
    cache_key = ""
    label = ""
    optional = False

    def __init__(
        self,
        store: ListStore,
        cache: CollectionCache,
        list_id: str | None,
        naming: NamingScheme,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.list_id = list_id
        self.naming = naming
        self.logger = logger or logging.getLogger(__name__)

    @property
    def available(self) -> bool:
        return bool(self.list_id)

    def select_fields(self) -> list[str]:
        raise NotImplementedError

    def _require_list_id(self) -> str:
        if not self.list_id:
            raise StorageNotConfigured(
                f"{self.label} list is not configured",
                detail=f"Set the {self.cache_key.upper()}_LIST_GUID environment variable.",
            )
        return self.list_id

    def get_all(self) -> list[dict[str, Any]]:
        if self.optional and not self.available:
            return []
        list_id = self._require_list_id()
        return self.cache.get_or_load(
            self.cache_key,
            lambda: self.store.fetch_collection(list_id, self.select_fields()),
        )

    def create(self, fields: Mapping[str, Any]) -> int:
        record_id = self.store.create_record(self._require_list_id(), fields)
        self.cache.invalidate(self.cache_key)
        self.logger.info("Created %s record", self.label, extra={"list": self.cache_key, "record_id": record_id})
        return record_id

    def update_fields(self, record_id: int, fields: Mapping[str, Any]) -> None:
        self.store.update_record(self._require_list_id(), record_id, fields)
        self.cache.invalidate(self.cache_key)
        self.logger.info(
            "Updated %s record",
            self.label,
            extra={"list": self.cache_key, "record_id": record_id, "fields": sorted(fields)},
        )

    def delete(self, record_id: int) -> None:
        self.store.delete_record(self._require_list_id(), record_id)
        self.cache.invalidate(self.cache_key)
        self.logger.info("Deleted %s record", self.label, extra={"list": self.cache_key, "record_id": record_id})

    def choice_values(self, column_name: str) -> list[str]:
        if not self.available:
            return []
        return self.store.list_choice_values(self._require_list_id(), column_name)


class GroupsRepository(ListRepository):
    cache_key = "groups"
    label = "Group"

    def select_fields(self) -> list[str]:
        return [*SYSTEM_FIELDS, "Name", "Description", "EventbriteSeriesID"]


class SessionsRepository(ListRepository):
    cache_key = "sessions"
    label = "Session"

    def select_fields(self) -> list[str]:
        naming = self.naming
        fields = [
            *SYSTEM_FIELDS,
            "Name",
            "Date",
            naming.session_notes,
            "EventbriteEventID",
            naming.group_display,
            naming.group_lookup,
        ]
        if naming.legacy:
            fields.extend(["Registrations", "Hours", "FinancialYearFlow", "Url"])
        return fields


class EntriesRepository(ListRepository):
    cache_key = "entries"
    label = "Entry"

    def select_fields(self) -> list[str]:
        naming = self.naming
        return [
            *SYSTEM_FIELDS,
            naming.session_display,
            naming.session_lookup,
            naming.profile_display,
            naming.profile_lookup,
            "Count",
            "Checked",
            "Hours",
            "Notes",
        ]


class ProfilesRepository(ListRepository):
    cache_key = "profiles"
    label = "Profile"

    def select_fields(self) -> list[str]:
        fields = [*SYSTEM_FIELDS, "Email", "MatchName", "IsGroup", "User"]
        if self.naming.legacy:
            fields.extend(["HoursLastFY", "HoursThisFY"])
        return fields


class RegularsRepository(ListRepository):
    cache_key = "regulars"
    label = "Regular"

    def select_fields(self) -> list[str]:
        naming = self.naming
        return [
            *SYSTEM_FIELDS,
            naming.profile_display,
            naming.profile_lookup,
            naming.group_display,
            naming.group_lookup,
        ]


class RecordsRepository(ListRepository):
    cache_key = "records"
    label = "Record"
    optional = True

    def select_fields(self) -> list[str]:
        return [*SYSTEM_FIELDS, RECORD_PROFILE_DISPLAY, RECORD_PROFILE_LOOKUP, "Type", "Status", "Date"]


class Repositories:
    """The six list repositories sharing one store client and cache."""

    def __init__(
        self,
        store: ListStore,
        cache: CollectionCache,
        naming: NamingScheme,
        list_ids: Mapping[str, str | None],
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.naming = naming
        self.groups = GroupsRepository(store, cache, list_ids.get("groups"), naming, logger=logger)
        self.sessions = SessionsRepository(store, cache, list_ids.get("sessions"), naming, logger=logger)
        self.entries = EntriesRepository(store, cache, list_ids.get("entries"), naming, logger=logger)
        self.profiles = ProfilesRepository(store, cache, list_ids.get("profiles"), naming, logger=logger)
        self.regulars = RegularsRepository(store, cache, list_ids.get("regulars"), naming, logger=logger)
        self.records = RecordsRepository(store, cache, list_ids.get("records"), naming, logger=logger)
