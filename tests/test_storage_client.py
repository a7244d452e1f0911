from __future__ import annotations

import pytest
import requests

from tracker_app.errors import StorageError, StorageNotConfigured
from tracker_app.storage.cache import CollectionCache
from tracker_app.storage.client import GRAPH_BASE_URL, GraphListClient, flatten_item, storage_error_for


class FakeResponse:
    def __init__(self, *, status_code=200, json_data=None, text: str = ""):
        self.status_code = status_code
        self._json_data = json_data or {}
        self.text = text
        self.ok = status_code < 400

    def json(self):
        return self._json_data


class FakeSession:
    def __init__(self, responses=None, *, token_expires_in=3600):
        self.responses = list(responses or [])
        self.token_expires_in = token_expires_in
        self.post_calls = []
        self.request_calls = []

    def post(self, url, data=None, timeout=None):
        self.post_calls.append((url, data))
        return FakeResponse(json_data={"access_token": f"token-{len(self.post_calls)}", "expires_in": self.token_expires_in})

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.request_calls.append((method, url, headers, kwargs))
        if not self.responses:
            raise AssertionError(f"Unexpected request {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


SITE_RESPONSE = FakeResponse(json_data={"id": "site-123"})


def make_client(session, clock=None):
    return GraphListClient(
        tenant_id="tenant",
        client_id="client",
        client_secret="secret",
        site_url="https://example.sharepoint.com/sites/volunteers",
        session=session,
        clock=clock or FakeClock(),
    )


def item(item_id, **fields):
    return {
        "id": str(item_id),
        "fields": {"id": str(item_id), **fields},
        "createdDateTime": "2025-01-01T00:00:00Z",
        "lastModifiedDateTime": "2025-01-02T00:00:00Z",
    }


class TestGraphListClient:
    def test_flatten_item_promotes_system_fields(self):
        flat = flatten_item(item(7, Title="Sat"))
        assert flat == {
            "ID": 7,
            "Title": "Sat",
            "Created": "2025-01-01T00:00:00Z",
            "Modified": "2025-01-02T00:00:00Z",
        }

    def test_fetch_collection_follows_next_link(self):
        next_url = f"{GRAPH_BASE_URL}/sites/site-123/lists/groups/items?$skiptoken=abc"
        session = FakeSession(
            [
                SITE_RESPONSE,
                FakeResponse(json_data={"value": [item(1, Title="Sat")], "@odata.nextLink": next_url}),
                FakeResponse(json_data={"value": [item(2, Title="Wed")]}),
            ]
        )
        client = make_client(session)

        records = client.fetch_collection("groups", ["ID", "Title", "Title"])

        assert [record["ID"] for record in records] == [1, 2]
        site_call, first_page, second_page = session.request_calls
        assert site_call[1] == f"{GRAPH_BASE_URL}/sites/example.sharepoint.com:/sites/volunteers"
        assert first_page[3]["params"]["expand"] == "fields(select=ID,Title)"
        assert first_page[3]["params"]["$top"] == "999"
        assert second_page[1] == next_url
        assert second_page[3]["params"] is None
        assert first_page[2]["Authorization"] == "Bearer token-1"

    def test_token_is_reused_until_close_to_expiry(self):
        clock = FakeClock()
        session = FakeSession(
            [SITE_RESPONSE, FakeResponse(json_data={"value": []}), FakeResponse(json_data={"value": []})]
        )
        client = make_client(session, clock)

        client.fetch_collection("groups", ["ID"])
        assert len(session.post_calls) == 1

        clock.now += 3600 - 299
        client.fetch_collection("groups", ["ID"])
        assert len(session.post_calls) == 2

    @pytest.mark.parametrize(
        "status, message, expected_status",
        [
            (401, "Unauthorized - token may be invalid or expired", 401),
            (403, "Access denied - check API permissions", 403),
            (404, "List or item not found", 404),
            (500, "Store request failed (500)", 502),
        ],
    )
    def test_error_statuses_map_to_stable_messages(self, status, message, expected_status):
        session = FakeSession([SITE_RESPONSE, FakeResponse(status_code=status, text="boom")])
        client = make_client(session)

        with pytest.raises(StorageError) as excinfo:
            client.fetch_collection("groups", ["ID"])

        assert excinfo.value.message == message
        assert excinfo.value.status_code == expected_status
        assert storage_error_for(status).message == message

    def test_transport_errors_become_storage_errors(self):
        session = FakeSession([SITE_RESPONSE, requests.ConnectionError("unreachable")])
        client = make_client(session)

        with pytest.raises(StorageError) as excinfo:
            client.fetch_collection("groups", ["ID"])
        assert "unreachable" in excinfo.value.detail

    def test_missing_credentials_raise_not_configured(self):
        client = GraphListClient(
            tenant_id=None, client_id=None, client_secret=None, site_url=None, session=FakeSession()
        )
        assert not client.configured
        with pytest.raises(StorageNotConfigured):
            client.fetch_collection("groups", ["ID"])

    def test_create_update_delete_requests(self):
        session = FakeSession(
            [
                SITE_RESPONSE,
                FakeResponse(status_code=201, json_data={"id": "42"}),
                FakeResponse(json_data={}),
                FakeResponse(status_code=204),
            ]
        )
        client = make_client(session)

        assert client.create_record("entries", {"Notes": "#New"}) == 42
        client.update_record("entries", 42, {"Hours": 3})
        client.delete_record("entries", 42)

        _, create, update, delete = session.request_calls
        assert create[0] == "POST" and create[3]["json"] == {"fields": {"Notes": "#New"}}
        assert update[0] == "PATCH" and update[1].endswith("/lists/entries/items/42/fields")
        assert update[3]["json"] == {"Hours": 3}
        assert delete[0] == "DELETE" and delete[1].endswith("/lists/entries/items/42")

    def test_choice_values_are_cached_and_failures_return_empty(self):
        columns = {"value": [{"name": "Status", "choice": {"choices": ["Accepted", "Declined"]}}]}
        session = FakeSession([SITE_RESPONSE, FakeResponse(json_data=columns), FakeResponse(status_code=403)])
        client = make_client(session)

        assert client.list_choice_values("records", "Status") == ["Accepted", "Declined"]
        assert client.list_choice_values("records", "Status") == ["Accepted", "Declined"]
        assert client.list_choice_values("records", "Type") == []
        assert len(session.request_calls) == 3


class TestCollectionCache:
    def test_entries_expire_after_ttl(self):
        clock = FakeClock(0.0)
        cache = CollectionCache(300, clock=clock)
        cache.set("groups", [1])
        assert cache.get("groups") == [1]
        clock.now = 300.0
        assert cache.get("groups") is None
        assert cache.stats()["hits"] == 1
        assert cache.stats()["misses"] == 1

    def test_get_or_load_only_loads_once(self):
        cache = CollectionCache(300)
        calls = []

        def loader():
            calls.append(1)
            return ["a"]

        assert cache.get_or_load("profiles", loader) == ["a"]
        assert cache.get_or_load("profiles", loader) == ["a"]
        assert len(calls) == 1

        cache.invalidate("profiles")
        cache.get_or_load("profiles", loader)
        assert len(calls) == 2
        assert cache.keys() == ["profiles"]

    def test_zero_ttl_disables_caching(self):
        cache = CollectionCache(0)
        cache.set("groups", [1])
        assert cache.get("groups") is None
        assert cache.stats()["keys"] == []
