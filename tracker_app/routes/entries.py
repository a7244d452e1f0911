# tracker_app/routes/entries.py

"""
Entry routes: detail with the profile's financial-year hours, field edits and delete.
"""

import math

from flask import current_app
from flask_login import login_required

from tracker_app.errors import NotFoundError, TrackerError, ValidationError
from tracker_app.services.enrichment import aggregate_profile_stats
from tracker_app.utils.financial_year import current_financial_year
from tracker_app.utils.tags import parse_tags

from .helpers import json_body, json_success, server_error, services


def parse_entry_update(body):
    """
    Validate an entry PATCH body.

    Returns the keyword arguments for ``DataService.update_entry``. Any invalid
    value rejects the whole request.
    """
    updates = {}
    if "checkedIn" in body:
        value = body["checkedIn"]
        if not isinstance(value, bool):
            raise ValidationError("checkedIn must be a boolean")
        updates["checked_in"] = value
    if "count" in body:
        value = body["count"]
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValidationError("count must be a non-negative integer")
        updates["count"] = value
    if "hours" in body:
        value = body["hours"]
        if (
            not isinstance(value, (int, float))
            or isinstance(value, bool)
            or not math.isfinite(value)
            or value < 0
        ):
            raise ValidationError("hours must be a non-negative number")
        updates["hours"] = float(value)
    if "notes" in body:
        value = body["notes"]
        if not isinstance(value, str):
            raise ValidationError("notes must be a string")
        updates["notes"] = value
    if not updates:
        raise ValidationError("No valid fields to update")
    return updates


def register_entry_routes(app):
    """Register entry routes"""

    @app.route("/api/entries/<group_key>/<session_date>/<slug>", methods=["GET"])
    @login_required
    def api_entry_detail(group_key, session_date, slug):
        try:
            data = services().data
            group = data.require_group(data.groups(), group_key)
            sessions = data.sessions()
            session = data.require_session(sessions, group.id, session_date)
            profile = data.require_profile(data.profiles(), slug)
            entries = data.entries()
            entry = next(
                (item for item in entries if item.session_id == session.id and item.profile_id == profile.id),
                None,
            )
            if entry is None:
                raise NotFoundError("Entry not found")

            stats = aggregate_profile_stats(entries, sessions, current_financial_year()).get(profile.id)
            payload = {
                "id": entry.id,
                "sessionId": session.id,
                "groupKey": group.key,
                "groupName": group.display_name,
                "date": session.date_key,
                "profileId": profile.id,
                "volunteerName": profile.name,
                "volunteerSlug": profile.slug,
                "isGroup": profile.is_group,
                "count": entry.count,
                "hours": entry.hours,
                "checkedIn": entry.checked_in,
                "notes": entry.notes,
                "tags": sorted(parse_tags(entry.notes)),
                "hoursThisFY": stats.to_dict()["hoursThisFY"] if stats else 0.0,
                "hoursLastFY": stats.to_dict()["hoursLastFY"] if stats else 0.0,
            }
            return json_success(payload)
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to fetch entry detail", e)

    @app.route("/api/entries/<int:entry_id>", methods=["PATCH"])
    @login_required
    def api_update_entry(entry_id):
        try:
            updates = parse_entry_update(json_body())
            services().data.update_entry(entry_id, **updates)
            current_app.logger.debug(f"Updated entry {entry_id}: {sorted(updates)}")
            return json_success()
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to update entry", e)

    @app.route("/api/entries/<int:entry_id>", methods=["DELETE"])
    @login_required
    def api_delete_entry(entry_id):
        try:
            services().data.delete_entry(entry_id)
            return json_success()
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to delete entry", e)
