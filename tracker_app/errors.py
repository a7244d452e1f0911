"""
Error hierarchy surfaced by the tracker services and rendered by the API.

Each error carries the HTTP status the API responds with so route handlers can
let them propagate to the registered error handler.
"""

from __future__ import annotations


class TrackerError(RuntimeError):
    """Base error for tracker failures that map to an API response."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"success": False, "error": self.message}
        if self.detail:
            payload["message"] = self.detail
        return payload


class NotFoundError(TrackerError):
    """Raised when a keyed lookup (group, session, profile, entry) finds nothing."""

    status_code = 404


class ValidationError(TrackerError):
    """Raised when a request body is missing required fields or has bad types."""

    status_code = 400


class ConflictError(TrackerError):
    """Raised when a write would break a business rule (e.g. orphaning entries)."""

    status_code = 400


class StorageError(TrackerError):
    """Raised when the remote list store rejects or fails a request."""

    status_code = 502


class StorageNotConfigured(StorageError):
    """Raised when store credentials or a list identifier are missing."""

    status_code = 503


class FeedError(TrackerError):
    """Raised when the external events feed cannot be reached or parsed."""

    status_code = 502
