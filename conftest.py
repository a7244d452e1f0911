# conftest.py

import copy
import itertools
import os

import pytest

# Set testing environment BEFORE importing app
# This ensures app.py uses TestingConfig when imported
os.environ["FLASK_ENV"] = "testing"

# Now import app and other modules after environment is set
from app import app as flask_app  # noqa: E402
from tracker_app.errors import FeedError  # noqa: E402
from tracker_app.extension import LIST_ID_SETTINGS, init_tracker  # noqa: E402
from tracker_app.storage.client import storage_error_for  # noqa: E402

LIST_IDS = {name: f"{name}-list" for name in LIST_ID_SETTINGS}
TIMESTAMP = "2025-01-01T00:00:00Z"


class InMemoryListStore:
    """List store double holding flat records keyed by list id."""

    def __init__(self):
        self.lists = {list_id: {} for list_id in LIST_IDS.values()}
        self.choices = {}
        self.fetch_calls = []
        self.writes = []
        self._ids = itertools.count(1)

    def add(self, name, **fields):
        """Seed a record into the list registered under ``name``."""
        record_id = next(self._ids)
        self.lists[LIST_IDS[name]][record_id] = {
            "ID": record_id,
            **fields,
            "Created": TIMESTAMP,
            "Modified": TIMESTAMP,
        }
        return record_id

    def records(self, name):
        return list(self.lists[LIST_IDS[name]].values())

    def get(self, name, record_id):
        return self.lists[LIST_IDS[name]].get(record_id)

    # ListStore protocol

    def fetch_collection(self, collection_id, select_fields, filter=None, order_by=None):
        self.fetch_calls.append(collection_id)
        return [copy.deepcopy(record) for record in self.lists.setdefault(collection_id, {}).values()]

    def create_record(self, collection_id, fields):
        record_id = next(self._ids)
        self.lists.setdefault(collection_id, {})[record_id] = {
            "ID": record_id,
            **fields,
            "Created": TIMESTAMP,
            "Modified": TIMESTAMP,
        }
        self.writes.append(("create", collection_id, record_id, dict(fields)))
        return record_id

    def update_record(self, collection_id, record_id, fields):
        record = self.lists.setdefault(collection_id, {}).get(record_id)
        if record is None:
            raise storage_error_for(404)
        record.update(fields)
        self.writes.append(("update", collection_id, record_id, dict(fields)))

    def delete_record(self, collection_id, record_id):
        if self.lists.setdefault(collection_id, {}).pop(record_id, None) is None:
            raise storage_error_for(404)
        self.writes.append(("delete", collection_id, record_id, {}))

    def list_choice_values(self, collection_id, column_name):
        return list(self.choices.get((collection_id, column_name), []))


class FakeFeed:
    """Events feed double with canned events and attendees."""

    configured = True

    def __init__(self):
        self.events = []
        self.attendees = {}
        self.failing_events = set()
        self.config_checks = []
        self.attendee_calls = []

    def list_org_events(self):
        return list(self.events)

    def list_event_attendees(self, event_id):
        self.attendee_calls.append(event_id)
        if event_id in self.failing_events:
            raise FeedError(f"Events feed returned 500 for {event_id}")
        return list(self.attendees.get(event_id, []))

    def check_configuration(self, limit=5):
        return list(self.config_checks[:limit])


@pytest.fixture
def store():
    return InMemoryListStore()


@pytest.fixture
def feed():
    return FakeFeed()


@pytest.fixture(scope="function")
def app(store, feed):
    """Configure the Flask application against in-memory collaborators"""
    flask_app.config.update(
        {
            "TESTING": True,
            "LOGIN_DISABLED": True,
            "MONITORING_ENABLED": False,
            "FIELD_NAMING": "clean",
            "CACHE_TTL_SECONDS": 300,
            "MEMBER_HOURS_THRESHOLD": 15,
            **{setting: LIST_IDS[name] for name, setting in LIST_ID_SETTINGS.items()},
        }
    )
    init_tracker(flask_app, store=store, feed=feed)
    yield flask_app


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    """Create a test client for the Flask application"""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def services(app):
    from tracker_app.extension import get_services

    return get_services(app)
