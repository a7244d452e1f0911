# tracker_app/routes/sessions.py

"""
Session routes: enriched listing, detail with entries, edits, adding entries
and the per-session refresh from regulars and the events feed.
"""

import re
from datetime import date

from flask import current_app
from flask_login import login_required

from tracker_app.errors import ConflictError, NotFoundError, TrackerError, ValidationError
from tracker_app.services.badges import resolve_badges
from tracker_app.services.enrichment import enrich_sessions, sort_sessions_by_date
from tracker_app.utils.identifiers import round_hours, to_slug
from tracker_app.utils.tags import TAG_NEW, append_tag, parse_tags

from .helpers import json_body, json_success, optional_string, server_error, services, string_field

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_session_date(value):
    """Return a valid ``YYYY-MM-DD`` string or ``None``."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return None
    try:
        date.fromisoformat(value)
    except ValueError:
        return None
    return value


def entry_to_dict(entry, profile, badges):
    name = profile.name if profile else entry.profile_name
    return {
        "id": entry.id,
        "profileId": entry.profile_id,
        "volunteerName": name,
        "volunteerSlug": to_slug(name),
        "isGroup": bool(profile and profile.is_group),
        "isMember": badges.is_member(entry.profile_id),
        "cardStatus": badges.card_status(entry.profile_id),
        "count": entry.count,
        "hours": entry.hours,
        "checkedIn": entry.checked_in,
        "notes": entry.notes,
        "tags": sorted(parse_tags(entry.notes)),
    }


def register_session_routes(app):
    """Register session routes"""

    @app.route("/api/sessions", methods=["GET"])
    @login_required
    def api_list_sessions():
        try:
            data = services().data
            groups = data.groups()
            group_keys = {group.id: group.key for group in groups}
            enriched = sort_sessions_by_date(enrich_sessions(data.sessions(), data.entries(), groups))
            results = [session.to_dict(group_keys.get(session.session.group_id)) for session in enriched]
            return json_success(results, count=len(results))
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to fetch sessions", e)

    @app.route("/api/sessions", methods=["POST"])
    @login_required
    def api_create_session():
        try:
            body = json_body()
            group_id = body.get("groupId")
            raw_date = body.get("date")
            if not group_id or not raw_date:
                raise ValidationError("groupId and date are required")
            session_date = parse_session_date(str(raw_date))
            if session_date is None:
                raise ValidationError("date must be YYYY-MM-DD format")
            try:
                group_id = int(group_id)
            except (TypeError, ValueError):
                raise ValidationError("groupId must be a number") from None

            data = services().data
            group = next((group for group in data.groups() if group.id == group_id), None)
            if group is None:
                raise NotFoundError("Group not found")

            session_id = data.create_session(
                group,
                session_date,
                name=(optional_string(body, "name") or "").strip() or None,
                notes=(optional_string(body, "description") or "").strip() or None,
            )
            current_app.logger.info(f"Created session {session_date} for group {group.key} (ID: {session_id})")
            return json_success({"id": session_id, "groupKey": group.key, "date": session_date}), 201
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to create session", e)

    @app.route("/api/sessions/<group_key>/<session_date>", methods=["GET"])
    @login_required
    def api_session_detail(group_key, session_date):
        try:
            data = services().data
            group = data.require_group(data.groups(), group_key)
            session = data.require_session(data.sessions(), group.id, session_date)
            session_entries = [entry for entry in data.entries() if entry.session_id == session.id]
            profiles_by_id = {profile.id: profile for profile in data.profiles()}
            badges = resolve_badges(data.records())

            payload = {
                "id": session.id,
                "displayName": session.display_name,
                "description": session.notes,
                "date": session.date_key,
                "groupId": group.id,
                "groupKey": group.key,
                "groupName": group.display_name,
                "registrations": len(session_entries),
                "hours": round_hours(sum(entry.hours for entry in session_entries)),
                "financialYear": f"FY{session.financial_year}",
                "eventbriteEventId": session.external_event_id,
                "entries": [
                    entry_to_dict(entry, profiles_by_id.get(entry.profile_id), badges) for entry in session_entries
                ],
            }
            return json_success(payload)
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to fetch session detail", e)

    @app.route("/api/sessions/<group_key>/<session_date>", methods=["PATCH"])
    @login_required
    def api_update_session(group_key, session_date):
        try:
            body = json_body()
            display_name = string_field(body, "displayName")
            description = string_field(body, "description")
            event_id = string_field(body, "eventbriteEventId")
            new_date = None
            if "date" in body:
                new_date = parse_session_date(body.get("date"))
                if new_date is None:
                    raise ValidationError("date must be YYYY-MM-DD format")
            if display_name is None and description is None and event_id is None and new_date is None:
                raise ValidationError("No valid fields to update")

            data = services().data
            group = data.require_group(data.groups(), group_key)
            session = data.require_session(data.sessions(), group.id, session_date)
            data.update_session(
                session.id,
                display_name=display_name,
                notes=description,
                external_event_id=event_id,
                session_date=new_date,
            )
            return json_success({"date": new_date or session_date})
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to update session", e)

    @app.route("/api/sessions/<group_key>/<session_date>", methods=["DELETE"])
    @login_required
    def api_delete_session(group_key, session_date):
        try:
            data = services().data
            group = data.require_group(data.groups(), group_key)
            session = data.require_session(data.sessions(), group.id, session_date)
            if any(entry.session_id == session.id for entry in data.entries()):
                raise ConflictError("Cannot delete session with existing entries")
            data.delete_session(session.id)
            return json_success()
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to delete session", e)

    @app.route("/api/sessions/<group_key>/<session_date>/entries", methods=["POST"])
    @login_required
    def api_add_entry(group_key, session_date):
        try:
            body = json_body()
            profile_id = body.get("profileId", body.get("volunteerId"))
            if not isinstance(profile_id, int) or isinstance(profile_id, bool):
                raise ValidationError("profileId is required and must be a number")

            data = services().data
            group = data.require_group(data.groups(), group_key)
            session = data.require_session(data.sessions(), group.id, session_date)
            profile = next((profile for profile in data.profiles() if profile.id == profile_id), None)
            if profile is None:
                raise NotFoundError("Profile not found")

            entries = data.entries()
            if any(entry.session_id == session.id and entry.profile_id == profile.id for entry in entries):
                raise ConflictError("Profile is already registered for this session")

            notes = (optional_string(body, "notes") or "").strip() or None
            first_appearance = not any(
                entry.profile_id == profile.id and entry.session_id != session.id for entry in entries
            )
            if first_appearance:
                notes = append_tag(notes, TAG_NEW)

            entry_id = data.create_entry(session.id, profile.id, notes=notes)
            return json_success({"id": entry_id}), 201
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to create entry", e)

    @app.route("/api/sessions/<group_key>/<session_date>/refresh", methods=["POST"])
    @login_required
    def api_refresh_session(group_key, session_date):
        try:
            tracker = services()
            data = tracker.data
            group = data.require_group(data.groups(), group_key)
            session = data.require_session(data.sessions(), group.id, session_date)
            result = tracker.reconciler.refresh_session(group, session)
            return json_success(result.to_dict())
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to refresh session", e)
