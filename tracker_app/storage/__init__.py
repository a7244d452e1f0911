"""
Remote list store access: HTTP client, collection cache, naming regimes and
per-list repositories.
"""

from __future__ import annotations

from .cache import CollectionCache
from .client import GraphListClient, flatten_item, storage_error_for
from .naming import CLEAN, LEGACY, NamingScheme, resolve_naming_scheme
from .repositories import ListStore, Repositories

__all__ = [
    "CLEAN",
    "LEGACY",
    "CollectionCache",
    "GraphListClient",
    "ListStore",
    "NamingScheme",
    "Repositories",
    "flatten_item",
    "resolve_naming_scheme",
    "storage_error_for",
]
