# tracker_app/routes/sync.py

"""
Events feed synchronisation endpoints.
"""

from flask import current_app
from flask_login import login_required

from tracker_app.errors import FeedError, TrackerError

from .helpers import json_success, server_error, services


def _require_feed(feed):
    if not getattr(feed, "configured", True):
        raise FeedError("Eventbrite is not configured", status_code=503)


def register_sync_routes(app):
    """Register Eventbrite sync routes"""

    @app.route("/api/eventbrite/sync-sessions", methods=["POST"])
    @login_required
    def api_sync_sessions():
        try:
            tracker = services()
            _require_feed(tracker.feed)
            result = tracker.reconciler.reconcile_sessions()
            return json_success(result.to_dict())
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to sync sessions", e)

    @app.route("/api/eventbrite/sync-attendees", methods=["POST"])
    @login_required
    def api_sync_attendees():
        try:
            tracker = services()
            _require_feed(tracker.feed)
            result = tracker.reconciler.reconcile_attendees()
            return json_success(result.to_dict())
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to sync attendees", e)

    @app.route("/api/eventbrite/event-and-attendee-update", methods=["POST"])
    @login_required
    def api_sync_all():
        try:
            tracker = services()
            _require_feed(tracker.feed)
            outcome = tracker.reconciler.reconcile_all()
            current_app.logger.info(f"Eventbrite update: {outcome['summary']}")
            return json_success(outcome)
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to run Eventbrite update", e)

    @app.route("/api/eventbrite/unmatched-events", methods=["GET"])
    @login_required
    def api_unmatched_events():
        try:
            tracker = services()
            _require_feed(tracker.feed)
            events = [event.to_dict() for event in tracker.reconciler.unmatched_events()]
            return json_success(events, count=len(events))
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to fetch unmatched events", e)

    @app.route("/api/eventbrite/config-check", methods=["GET"])
    @login_required
    def api_feed_config_check():
        try:
            tracker = services()
            _require_feed(tracker.feed)
            checks = [check.to_dict() for check in tracker.feed.check_configuration()]
            return json_success(checks, count=len(checks))
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to check Eventbrite configuration", e)
