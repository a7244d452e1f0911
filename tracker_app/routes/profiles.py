# tracker_app/routes/profiles.py

"""
Profile routes: financial-year listing, detail, edits, transfer between
profiles and regular-group membership.
"""

from flask import current_app, request
from flask_login import login_required

from tracker_app.errors import ConflictError, NotFoundError, TrackerError, ValidationError
from tracker_app.services.badges import meets_hours_threshold, resolve_badges
from tracker_app.services.enrichment import (
    ProfileStats,
    aggregate_profile_stats,
    profile_group_hours,
    records_by_profile,
)
from tracker_app.utils.financial_year import current_financial_year
from tracker_app.utils.identifiers import to_slug
from tracker_app.utils.tags import parse_tags

from .helpers import (
    bool_field,
    json_body,
    json_success,
    optional_string,
    server_error,
    services,
    string_field,
)


def record_to_dict(record):
    return {"id": record.id, "type": record.type, "status": record.status, "date": record.date}


def profile_summary(profile, stats, badges, records, threshold):
    """Row used by the profile list and the profile export."""
    stats = stats or ProfileStats()
    totals = stats.to_dict()
    return {
        "id": profile.id,
        "name": profile.name,
        "slug": profile.slug,
        "email": profile.email,
        "isGroup": profile.is_group,
        "isMember": badges.is_member(profile.id),
        "cardStatus": badges.card_status(profile.id),
        **totals,
        "meetsHoursThreshold": meets_hours_threshold(totals["hoursThisFY"], threshold),
        "records": [record_to_dict(record) for record in records],
    }


def hours_threshold():
    return float(current_app.config.get("MEMBER_HOURS_THRESHOLD", 15))


def register_profile_routes(app):
    """Register profile and regular routes"""

    @app.route("/api/profiles", methods=["GET"])
    @login_required
    def api_list_profiles():
        try:
            data = services().data
            group_id = None
            group_key = request.args.get("group")
            if group_key:
                group_id = data.require_group(data.groups(), group_key).id

            stats = aggregate_profile_stats(
                data.entries(), data.sessions(), current_financial_year(), group_id=group_id
            )
            records = data.records()
            badges = resolve_badges(records)
            grouped_records = records_by_profile(records)
            threshold = hours_threshold()

            results = [
                profile_summary(
                    profile, stats.get(profile.id), badges, grouped_records.get(profile.id, []), threshold
                )
                for profile in data.profiles()
                if group_id is None or profile.id in stats
            ]
            results.sort(key=lambda row: row["name"].lower())
            return json_success(results, count=len(results))
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to fetch profiles", e)

    @app.route("/api/profiles", methods=["POST"])
    @login_required
    def api_create_profile():
        try:
            body = json_body()
            name = (optional_string(body, "name") or "").strip()
            if not name:
                raise ValidationError("Name is required")
            email = (optional_string(body, "email") or "").strip() or None

            data = services().data
            profile_id = data.create_profile(name, email=email, match_name=name.lower())
            current_app.logger.info(f"Created profile {name} (ID: {profile_id})")
            profile = next((item for item in data.profiles() if item.id == profile_id), None)
            slug = profile.slug if profile else None
            return json_success({"id": profile_id, "slug": slug}), 201
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to create profile", e)

    @app.route("/api/profiles/<slug>", methods=["GET"])
    @login_required
    def api_profile_detail(slug):
        try:
            data = services().data
            profile = data.require_profile(data.profiles(), slug)
            groups = data.groups()
            sessions = data.sessions()
            entries = data.entries()
            records = data.records()
            fy = current_financial_year()
            badges = resolve_badges(records)

            stats = aggregate_profile_stats(entries, sessions, fy).get(profile.id) or ProfileStats()
            totals = stats.to_dict()
            session_map = {session.id: session for session in sessions}
            group_map = {group.id: group for group in groups}

            profile_entries = []
            for entry in entries:
                if entry.profile_id != profile.id:
                    continue
                session = session_map.get(entry.session_id)
                group = group_map.get(session.group_id) if session else None
                profile_entries.append(
                    {
                        "id": entry.id,
                        "sessionId": entry.session_id,
                        "date": session.date_key if session else None,
                        "sessionName": session.display_name if session else None,
                        "groupKey": group.key if group else None,
                        "groupName": group.display_name if group else None,
                        "count": entry.count,
                        "hours": entry.hours,
                        "checkedIn": entry.checked_in,
                        "notes": entry.notes,
                        "tags": sorted(parse_tags(entry.notes)),
                    }
                )
            profile_entries.sort(key=lambda row: row["date"] or "", reverse=True)

            payload = {
                "id": profile.id,
                "name": profile.name,
                "slug": profile.slug,
                "email": profile.email,
                "matchName": profile.match_name,
                "user": profile.external_username,
                "isGroup": profile.is_group,
                "isMember": badges.is_member(profile.id),
                "cardStatus": badges.card_status(profile.id),
                "financialYear": fy.label,
                **totals,
                "meetsHoursThreshold": meets_hours_threshold(totals["hoursThisFY"], hours_threshold()),
                "groupHours": profile_group_hours(profile.id, entries, sessions, groups, data.regulars(), fy),
                "entries": profile_entries,
                "records": [record_to_dict(record) for record in records if record.profile_id == profile.id],
            }
            return json_success(payload)
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to fetch profile detail", e)

    @app.route("/api/profiles/<slug>", methods=["PATCH"])
    @login_required
    def api_update_profile(slug):
        try:
            body = json_body()
            name = string_field(body, "name")
            if name is not None:
                name = name.strip()
                if not name:
                    raise ValidationError("Name cannot be empty")
            updates = {
                "name": name,
                "email": string_field(body, "email"),
                "match_name": string_field(body, "matchName"),
                "external_username": string_field(body, "user"),
                "is_group": bool_field(body, "isGroup"),
            }
            if all(value is None for value in updates.values()):
                raise ValidationError("No valid fields to update")

            data = services().data
            profile = data.require_profile(data.profiles(), slug)
            data.update_profile(profile.id, **updates)
            new_slug = profile.slug
            if name is not None:
                new_slug = to_slug(name)
            return json_success({"slug": new_slug})
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to update profile", e)

    @app.route("/api/profiles/<slug>", methods=["DELETE"])
    @login_required
    def api_delete_profile(slug):
        try:
            data = services().data
            profile = data.require_profile(data.profiles(), slug)
            if any(entry.profile_id == profile.id for entry in data.entries()):
                raise ConflictError("Cannot delete profile with existing entries")
            data.delete_profile(profile.id)
            current_app.logger.info(f"Deleted profile {profile.name} (ID: {profile.id})")
            return json_success()
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to delete profile", e)

    @app.route("/api/profiles/<slug>/transfer", methods=["POST"])
    @login_required
    def api_transfer_profile(slug):
        try:
            body = json_body()
            target_id = body.get("targetProfileId")
            if not isinstance(target_id, int) or isinstance(target_id, bool):
                raise ValidationError("targetProfileId is required and must be a number")
            delete_source = body.get("deleteSource") is True

            data = services().data
            profiles = data.profiles()
            source = data.require_profile(profiles, slug)
            target = next((profile for profile in profiles if profile.id == target_id), None)
            if target is None:
                raise NotFoundError("Target profile not found")
            if target.id == source.id:
                raise ValidationError("Cannot transfer a profile to itself")

            moved = {"entries": 0, "regulars": 0, "records": 0, "deletedRecords": 0, "deletedRegulars": 0}

            for entry in data.entries():
                if entry.profile_id == source.id:
                    data.update_entry(entry.id, profile_id=target.id)
                    moved["entries"] += 1

            regulars = data.regulars()
            target_groups = {regular.group_id for regular in regulars if regular.profile_id == target.id}
            for regular in regulars:
                if regular.profile_id != source.id:
                    continue
                if regular.group_id in target_groups:
                    data.delete_regular(regular.id)
                    moved["deletedRegulars"] += 1
                else:
                    data.move_regular(regular.id, target.id)
                    target_groups.add(regular.group_id)
                    moved["regulars"] += 1

            if data.records_available:
                records = data.records()
                target_types = {record.type for record in records if record.profile_id == target.id}
                for record in records:
                    if record.profile_id != source.id:
                        continue
                    if record.type in target_types:
                        data.delete_record(record.id)
                        moved["deletedRecords"] += 1
                    else:
                        data.update_record(record.id, profile_id=target.id)
                        target_types.add(record.type)
                        moved["records"] += 1

            if delete_source:
                data.delete_profile(source.id)

            current_app.logger.info(
                f"Transferred profile {source.id} to {target.id}: {moved}"
                + (" (source deleted)" if delete_source else "")
            )
            return json_success({**moved, "targetSlug": target.slug, "sourceDeleted": delete_source})
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to transfer profile", e)

    @app.route("/api/profiles/<slug>/regulars", methods=["POST"])
    @login_required
    def api_add_regular(slug):
        try:
            body = json_body()
            group_id = body.get("groupId")
            if not isinstance(group_id, int) or isinstance(group_id, bool):
                raise ValidationError("groupId is required and must be a number")

            data = services().data
            profile = data.require_profile(data.profiles(), slug)
            if not any(group.id == group_id for group in data.groups()):
                raise NotFoundError("Group not found")

            existing = next(
                (
                    regular
                    for regular in data.regulars()
                    if regular.profile_id == profile.id and regular.group_id == group_id
                ),
                None,
            )
            if existing is not None:
                return json_success({"id": existing.id, "created": False})

            regular_id = data.create_regular(profile.id, group_id)
            return json_success({"id": regular_id, "created": True}), 201
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to add regular", e)

    @app.route("/api/regulars/<int:regular_id>", methods=["DELETE"])
    @login_required
    def api_delete_regular(regular_id):
        try:
            services().data.delete_regular(regular_id)
            return json_success()
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to delete regular", e)
