"""
HTTP client for the remote list store (Microsoft Graph list items).

Authenticates with the client-credentials flow, resolves the site once, and
exposes the four list primitives plus choice-column lookups. Pagination is
followed transparently so callers always receive complete collections.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Sequence
from urllib.parse import urlparse

import requests

from tracker_app.errors import StorageError, StorageNotConfigured
from tracker_app.metrics import record_store_request

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
PAGE_SIZE = 999
TOKEN_REFRESH_MARGIN_SECONDS = 300

STATUS_MESSAGES = {
    401: "Unauthorized - token may be invalid or expired",
    403: "Access denied - check API permissions",
    404: "List or item not found",
}


def storage_error_for(status_code: int, detail: str | None = None) -> StorageError:
    """Map an HTTP status from the store to a stable, human-readable error."""

    message = STATUS_MESSAGES.get(status_code, f"Store request failed ({status_code})")
    return StorageError(message, status_code=status_code if status_code in STATUS_MESSAGES else 502, detail=detail)


def flatten_item(item: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten a Graph list item into ``{ID, **fields, Created, Modified}``."""

    fields = dict(item.get("fields") or {})
    fields.pop("id", None)
    try:
        record_id: Any = int(item.get("id"))
    except (TypeError, ValueError):
        record_id = item.get("id")
    return {
        "ID": record_id,
        **fields,
        "Created": item.get("createdDateTime"),
        "Modified": item.get("lastModifiedDateTime"),
    }


class GraphListClient:
    """Read and write list items on a single site."""

    def __init__(
        self,
        *,
        tenant_id: str | None,
        client_id: str | None,
        client_secret: str | None,
        site_url: str | None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ) -> None:
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.site_url = site_url
        self.session = session or requests.Session()
        self.timeout = timeout
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._site_id: str | None = None
        self._choice_cache: dict[tuple[str, str], list[str]] = {}

    @property
    def configured(self) -> bool:
        return all((self.tenant_id, self.client_id, self.client_secret, self.site_url))

    # Authentication -------------------------------------------------------------

    def _access_token(self) -> str:
        if self._token and self.clock() < self._token_expires_at - TOKEN_REFRESH_MARGIN_SECONDS:
            return self._token
        if not self.configured:
            raise StorageNotConfigured(
                "List store is not configured",
                detail="Set SHAREPOINT_TENANT_ID, SHAREPOINT_CLIENT_ID, SHAREPOINT_CLIENT_SECRET and SHAREPOINT_SITE_URL.",
            )
        try:
            response = self.session.post(
                TOKEN_URL_TEMPLATE.format(tenant=self.tenant_id),
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "scope": GRAPH_SCOPE,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            record_store_request("TOKEN", "failure")
            raise StorageError("Failed to obtain access token", detail=str(exc)) from exc
        if not response.ok:
            record_store_request("TOKEN", "failure")
            self.logger.error("Store token request failed", extra={"status_code": response.status_code})
            raise storage_error_for(401 if response.status_code in (400, 401) else response.status_code)
        record_store_request("TOKEN", "success")
        payload = response.json()
        self._token = payload["access_token"]
        self._token_expires_at = self.clock() + float(payload.get("expires_in", 3600))
        self.logger.debug("Store access token refreshed")
        return self._token

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token()}",
            "Accept": "application/json",
        }

    # Transport ------------------------------------------------------------------

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        headers = self._headers()
        if "json" in kwargs:
            headers["Content-Type"] = "application/json"
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            record_store_request(method, "failure")
            self.logger.error("Store request raised", extra={"method": method, "url": url, "error": str(exc)})
            raise StorageError("Store request failed", detail=str(exc)) from exc
        if not response.ok:
            record_store_request(method, "failure")
            self.logger.error(
                "Store request failed",
                extra={"method": method, "url": url, "status_code": response.status_code, "body": response.text[:500]},
            )
            raise storage_error_for(response.status_code, detail=response.text[:200] or None)
        record_store_request(method, "success")
        return response

    @property
    def site_id(self) -> str:
        if self._site_id is None:
            if not self.site_url:
                raise StorageNotConfigured("List store is not configured", detail="Set SHAREPOINT_SITE_URL.")
            parsed = urlparse(self.site_url)
            path = parsed.path.strip("/")
            if path:
                url = f"{GRAPH_BASE_URL}/sites/{parsed.netloc}:/{path}"
            else:
                url = f"{GRAPH_BASE_URL}/sites/{parsed.netloc}"
            self._site_id = self._request("GET", url).json()["id"]
            self.logger.info("Resolved store site", extra={"site_id": self._site_id})
        return self._site_id

    def _items_url(self, collection_id: str) -> str:
        return f"{GRAPH_BASE_URL}/sites/{self.site_id}/lists/{collection_id}/items"

    # Public API -----------------------------------------------------------------

    def fetch_collection(
        self,
        collection_id: str,
        select_fields: Sequence[str],
        filter: str | None = None,
        order_by: str | None = None,
    ) -> list[dict[str, Any]]:
        """Return every item in the list, following ``@odata.nextLink`` pages."""

        params: dict[str, str] = {
            "expand": f"fields(select={','.join(dict.fromkeys(select_fields))})",
            "$top": str(PAGE_SIZE),
        }
        if filter:
            params["$filter"] = filter
        if order_by:
            params["$orderby"] = order_by

        records: list[dict[str, Any]] = []
        url: str | None = self._items_url(collection_id)
        page_params: dict[str, str] | None = params
        pages = 0
        while url:
            payload = self._request("GET", url, params=page_params).json()
            pages += 1
            records.extend(flatten_item(item) for item in payload.get("value", []))
            url = payload.get("@odata.nextLink")
            page_params = None
        self.logger.debug(
            "Fetched list collection",
            extra={"collection_id": collection_id, "pages": pages, "record_count": len(records)},
        )
        return records

    def create_record(self, collection_id: str, fields: Mapping[str, Any]) -> int:
        payload = self._request("POST", self._items_url(collection_id), json={"fields": dict(fields)}).json()
        return int(payload["id"])

    def update_record(self, collection_id: str, record_id: int, fields: Mapping[str, Any]) -> None:
        self._request("PATCH", f"{self._items_url(collection_id)}/{record_id}/fields", json=dict(fields))

    def delete_record(self, collection_id: str, record_id: int) -> None:
        self._request("DELETE", f"{self._items_url(collection_id)}/{record_id}")

    def list_choice_values(self, collection_id: str, column_name: str) -> list[str]:
        """Return the allowed values of a choice column, or ``[]`` if unavailable."""

        cache_key = (collection_id, column_name)
        if cache_key in self._choice_cache:
            return list(self._choice_cache[cache_key])
        try:
            url = f"{GRAPH_BASE_URL}/sites/{self.site_id}/lists/{collection_id}/columns"
            columns = self._request("GET", url).json().get("value", [])
        except StorageError as exc:
            self.logger.warning(
                "Could not read choice column",
                extra={"collection_id": collection_id, "column": column_name, "error": exc.message},
            )
            return []
        for column in columns:
            if column_name in (column.get("name"), column.get("displayName")):
                choices = list((column.get("choice") or {}).get("choices") or [])
                self._choice_cache[cache_key] = choices
                return list(choices)
        return []
