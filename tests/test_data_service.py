import logging

import pytest

from tracker_app.errors import NotFoundError, StorageNotConfigured
from tracker_app.services.data_service import DataService
from tracker_app.storage.cache import CollectionCache
from tracker_app.storage.naming import CLEAN, LEGACY
from tracker_app.storage.repositories import Repositories

from conftest import LIST_IDS, InMemoryListStore


def build_data(store, naming=CLEAN, list_ids=None):
    repositories = Repositories(store, CollectionCache(300), naming, list_ids or LIST_IDS)
    return DataService(repositories)


def test_reads_are_cached_until_a_write(store):
    data = build_data(store)
    store.add("groups", Title="Sat")

    data.groups()
    data.groups()
    assert store.fetch_calls.count(LIST_IDS["groups"]) == 1

    data.create_group("Wed", name="Wednesday Crew")
    groups = data.groups()
    assert store.fetch_calls.count(LIST_IDS["groups"]) == 2
    assert {group.key for group in groups} == {"sat", "wed"}


def test_write_only_invalidates_its_own_collection(store):
    data = build_data(store)
    data.groups()
    data.profiles()
    data.create_profile("Ada Lovelace")
    data.groups()
    data.profiles()
    assert store.fetch_calls.count(LIST_IDS["groups"]) == 1
    assert store.fetch_calls.count(LIST_IDS["profiles"]) == 2


def test_invalid_records_are_skipped(store, caplog):
    data = build_data(store)
    store.add("sessions", Title="ok", Date="2025-04-02")
    store.add("sessions", Title="broken", Date="whenever")
    store.lists[LIST_IDS["sessions"]][99] = {"ID": "99", "Date": "2025-04-02"}

    with caplog.at_level(logging.WARNING):
        sessions = data.sessions()

    assert [session.lookup_key for session in sessions] == ["ok"]
    assert "Invalid Session" in caplog.text


def test_create_session_writes_lookup_and_title(store):
    data = build_data(store)
    group_id = store.add("groups", Title="Sat")
    group = data.groups()[0]

    session_id = data.create_session(group, "2025-04-02", notes="Bring gloves", external_event_id="ev-1")

    raw = store.get("sessions", session_id)
    assert raw["Title"] == "2025-04-02 Sat"
    assert raw["GroupLookupId"] == str(group_id)
    assert raw["Notes"] == "Bring gloves"
    assert raw["EventbriteEventID"] == "ev-1"


def test_legacy_naming_uses_legacy_columns(store):
    data = build_data(store, naming=LEGACY)
    store.add("groups", Title="Sat")
    group = data.groups()[0]
    session_id = data.create_session(group, "2025-04-02", notes="Notes here")
    entry_id = data.create_entry(session_id, 7, notes="#New")

    session_raw = store.get("sessions", session_id)
    assert session_raw["CrewLookupId"] == str(group.id)
    assert session_raw["Description"] == "Notes here"
    entry_raw = store.get("entries", entry_id)
    assert entry_raw["EventLookupId"] == str(session_id)
    assert entry_raw["VolunteerLookupId"] == "7"

    entry = data.entries()[0]
    assert (entry.session_id, entry.profile_id) == (session_id, 7)


def test_upsert_record_keeps_one_record_per_type(store):
    data = build_data(store)
    records = data.records()

    first_id, created = data.upsert_record(records, 5, "Photo Consent", "Declined", "2025-04-01")
    assert created is True
    second_id, created = data.upsert_record(records, 5, "Photo Consent", "Accepted", "2025-05-01")
    assert created is False
    assert first_id == second_id

    stored = data.records()
    assert len(stored) == 1
    assert stored[0].status == "Accepted"
    assert stored[0].date == "2025-05-01"


def test_missing_records_list_reads_as_empty():
    store = InMemoryListStore()
    data = build_data(store, list_ids={**LIST_IDS, "records": None})
    assert data.records_available is False
    assert data.records() == []
    with pytest.raises(StorageNotConfigured):
        data.create_record(1, "Photo Consent", "Accepted", "2025-04-01")


def test_missing_required_list_raises_not_configured():
    data = build_data(InMemoryListStore(), list_ids={**LIST_IDS, "groups": None})
    with pytest.raises(StorageNotConfigured):
        data.groups()


def test_lookups(store):
    data = build_data(store)
    group_id = store.add("groups", Title="Sat")
    store.add("sessions", Title="s", Date="2025-04-02T00:00:00Z", GroupLookupId=str(group_id))
    store.add("profiles", Title="O'Brien")

    group = data.require_group(data.groups(), " SAT ")
    assert data.require_session(data.sessions(), group.id, "2025-04-02").lookup_key == "s"
    assert data.require_profile(data.profiles(), "obrien").name == "O'Brien"
    with pytest.raises(NotFoundError):
        data.require_group(data.groups(), "sun")
    with pytest.raises(NotFoundError):
        data.require_session(data.sessions(), group.id, "2025-04-03")


def test_clear_cache_forces_refetch(store):
    data = build_data(store)
    data.groups()
    data.clear_cache()
    data.groups()
    assert store.fetch_calls.count(LIST_IDS["groups"]) == 2
    assert data.cache_stats()["keys"] == ["groups"]
