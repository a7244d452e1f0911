# tracker_app/routes/groups.py

"""
Group routes: list, detail with current financial-year stats, and edits.
"""

from flask import current_app
from flask_login import login_required

from tracker_app.errors import ConflictError, TrackerError, ValidationError
from tracker_app.services.enrichment import enrich_sessions, group_stats, regulars_by_group, sort_sessions_by_date
from tracker_app.utils.financial_year import current_financial_year

from .helpers import json_body, json_success, optional_string, server_error, services, string_field


def _regular_names(regulars, profiles_by_id):
    names = []
    for regular in regulars:
        profile = profiles_by_id.get(regular.profile_id)
        name = profile.name if profile else regular.profile_name
        if name:
            names.append(name)
    return sorted(names, key=str.lower)


def register_group_routes(app):
    """Register group routes"""

    @app.route("/api/groups", methods=["GET"])
    @login_required
    def api_list_groups():
        try:
            data = services().data
            groups = data.groups()
            profiles_by_id = {profile.id: profile for profile in data.profiles()}
            regulars = regulars_by_group(data.regulars())

            results = [
                {
                    "id": group.id,
                    "key": group.key,
                    "lookupKeyName": group.lookup_key,
                    "displayName": group.display_name,
                    "description": group.description,
                    "eventbriteSeriesId": group.external_series_id,
                    "regulars": _regular_names(regulars.get(group.id, []), profiles_by_id),
                }
                for group in groups
            ]
            current_app.logger.debug(f"Returning {len(results)} groups")
            return json_success(results, count=len(results))
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to fetch groups", e)

    @app.route("/api/groups", methods=["POST"])
    @login_required
    def api_create_group():
        try:
            body = json_body()
            key = (optional_string(body, "key") or "").strip()
            if not key:
                raise ValidationError("Group key is required")

            data = services().data
            if data.find_group_by_key(data.groups(), key):
                raise ConflictError(f"A group with key '{key.lower()}' already exists")

            group_id = data.create_group(
                key,
                name=(optional_string(body, "name") or "").strip() or None,
                description=(optional_string(body, "description") or "").strip() or None,
                external_series_id=(optional_string(body, "eventbriteSeriesId") or "").strip() or None,
            )
            current_app.logger.info(f"Created group {key} (ID: {group_id})")
            return json_success({"id": group_id, "key": key.lower()}), 201
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to create group", e)

    @app.route("/api/groups/<key>", methods=["GET"])
    @login_required
    def api_group_detail(key):
        try:
            data = services().data
            groups = data.groups()
            group = data.require_group(groups, key)
            sessions = data.sessions()
            entries = data.entries()
            profiles_by_id = {profile.id: profile for profile in data.profiles()}
            regulars = regulars_by_group(data.regulars()).get(group.id, [])
            fy = current_financial_year()

            group_sessions = [session for session in sessions if session.group_id == group.id]
            enriched = sort_sessions_by_date(enrich_sessions(group_sessions, entries, groups))

            payload = {
                "id": group.id,
                "key": group.key,
                "displayName": group.display_name,
                "description": group.description,
                "eventbriteSeriesId": group.external_series_id,
                "regulars": [
                    {
                        "id": regular.id,
                        "profileId": regular.profile_id,
                        "name": (profiles_by_id[regular.profile_id].name
                                 if regular.profile_id in profiles_by_id else regular.profile_name),
                    }
                    for regular in regulars
                ],
                "financialYear": fy.label,
                "stats": group_stats(group, sessions, entries, fy).to_dict(),
                "sessions": [session.to_dict(group.key) for session in enriched],
            }
            return json_success(payload)
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to fetch group detail", e)

    @app.route("/api/groups/<key>", methods=["PATCH"])
    @login_required
    def api_update_group(key):
        try:
            body = json_body()
            display_name = string_field(body, "displayName")
            description = string_field(body, "description")
            series_id = string_field(body, "eventbriteSeriesId")
            if display_name is None and description is None and series_id is None:
                raise ValidationError("No valid fields to update")

            data = services().data
            group = data.require_group(data.groups(), key)
            data.update_group(
                group.id,
                display_name=display_name,
                description=description,
                external_series_id=series_id,
            )
            return json_success()
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to update group", e)

    @app.route("/api/groups/<key>", methods=["DELETE"])
    @login_required
    def api_delete_group(key):
        try:
            data = services().data
            group = data.require_group(data.groups(), key)
            if any(session.group_id == group.id for session in data.sessions()):
                raise ConflictError("Cannot delete group with existing sessions")
            data.delete_group(group.id)
            current_app.logger.info(f"Deleted group {group.key} (ID: {group.id})")
            return json_success()
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to delete group", e)
