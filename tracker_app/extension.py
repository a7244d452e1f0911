"""
Wire the store client, repositories, data service and sync reconciler onto a
Flask app.

Everything is built once per app from its config and kept in
``app.extensions["tracker"]``; tests swap the store and feed for in-memory
doubles by calling ``init_tracker`` again with their own collaborators.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from flask import Flask, current_app

from tracker_app.services.data_service import DataService
from tracker_app.storage.cache import CollectionCache
from tracker_app.storage.client import GraphListClient
from tracker_app.storage.naming import NamingScheme, resolve_naming_scheme
from tracker_app.storage.repositories import ListStore, Repositories
from tracker_app.sync.feed_client import EventbriteClient
from tracker_app.sync.reconciler import ConsentQuestions, EventsFeed, SyncReconciler

TRACKER_EXTENSION_KEY = "tracker"

LIST_ID_SETTINGS = {
    "groups": "GROUPS_LIST_GUID",
    "sessions": "SESSIONS_LIST_GUID",
    "entries": "ENTRIES_LIST_GUID",
    "profiles": "PROFILES_LIST_GUID",
    "regulars": "REGULARS_LIST_GUID",
    "records": "RECORDS_LIST_GUID",
}


@dataclass
class TrackerServices:
    naming: NamingScheme
    store: ListStore
    feed: EventsFeed
    repositories: Repositories
    data: DataService
    reconciler: SyncReconciler


def build_store(config: Mapping[str, Any], logger: logging.Logger | None = None) -> GraphListClient:
    return GraphListClient(
        tenant_id=config.get("SHAREPOINT_TENANT_ID"),
        client_id=config.get("SHAREPOINT_CLIENT_ID"),
        client_secret=config.get("SHAREPOINT_CLIENT_SECRET"),
        site_url=config.get("SHAREPOINT_SITE_URL"),
        timeout=float(config.get("STORE_REQUEST_TIMEOUT", 30)),
        logger=logger,
    )


def build_feed(config: Mapping[str, Any], logger: logging.Logger | None = None) -> EventbriteClient:
    return EventbriteClient(
        api_key=config.get("EVENTBRITE_API_KEY"),
        organization_id=config.get("EVENTBRITE_ORGANIZATION_ID"),
        base_url=config.get("EVENTBRITE_API_URL") or "https://www.eventbriteapi.com/v3",
        logger=logger,
    )


def build_services(
    config: Mapping[str, Any],
    *,
    store: ListStore | None = None,
    feed: EventsFeed | None = None,
    logger: logging.Logger | None = None,
) -> TrackerServices:
    naming = resolve_naming_scheme(config.get("FIELD_NAMING"))
    store = store if store is not None else build_store(config, logger)
    feed = feed if feed is not None else build_feed(config, logger)
    cache = CollectionCache(int(config.get("CACHE_TTL_SECONDS", 300)))
    list_ids = {name: config.get(setting) for name, setting in LIST_ID_SETTINGS.items()}
    repositories = Repositories(store, cache, naming, list_ids, logger=logger)
    data = DataService(repositories, logger=logger)
    reconciler = SyncReconciler(
        data,
        feed,
        consent_questions=ConsentQuestions.default(
            privacy_question_id=str(config.get("EVENTBRITE_PRIVACY_QUESTION_ID") or "315115173"),
            photo_question_id=str(config.get("EVENTBRITE_PHOTO_QUESTION_ID") or "315115803"),
        ),
        duplicate_threshold=float(config.get("SYNC_DUPLICATE_THRESHOLD", 0.92)),
        logger=logger,
    )
    return TrackerServices(
        naming=naming,
        store=store,
        feed=feed,
        repositories=repositories,
        data=data,
        reconciler=reconciler,
    )


def init_tracker(app: Flask, *, store: ListStore | None = None, feed: EventsFeed | None = None) -> TrackerServices:
    services = build_services(app.config, store=store, feed=feed, logger=app.logger)
    app.extensions[TRACKER_EXTENSION_KEY] = services
    app.logger.info(
        "Tracker services initialised",
        extra={
            "field_naming": services.naming.name,
            "records_available": services.repositories.records.available,
        },
    )
    return services


def get_services(app: Flask | None = None) -> TrackerServices:
    target = app or current_app
    return target.extensions[TRACKER_EXTENSION_KEY]
