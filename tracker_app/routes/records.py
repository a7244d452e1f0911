# tracker_app/routes/records.py

"""
Consent record routes. A profile holds at most one record per type, so
creation is an upsert.
"""

from datetime import date

from flask import current_app
from flask_login import login_required

from tracker_app.errors import NotFoundError, TrackerError, ValidationError
from tracker_app.services.badges import DEFAULT_RECORD_STATUSES, DEFAULT_RECORD_TYPES

from .helpers import json_body, json_success, optional_string, server_error, services, string_field


def _required_string(body, key):
    value = (optional_string(body, key) or "").strip()
    if not value:
        raise ValidationError(f"{key} is required")
    return value


def _record_date(body):
    value = optional_string(body, "date")
    return value.strip() if value and value.strip() else date.today().isoformat()


def register_record_routes(app):
    """Register consent record routes"""

    @app.route("/api/records/options", methods=["GET"])
    @login_required
    def api_record_options():
        try:
            choices = services().data.record_choices()
            return json_success(
                {
                    "types": choices["types"] or list(DEFAULT_RECORD_TYPES),
                    "statuses": choices["statuses"] or list(DEFAULT_RECORD_STATUSES),
                }
            )
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to fetch record options", e)

    @app.route("/api/profiles/<int:profile_id>/records", methods=["POST"])
    @login_required
    def api_upsert_record(profile_id):
        try:
            body = json_body()
            record_type = _required_string(body, "type")
            status = _required_string(body, "status")
            record_date = _record_date(body)

            data = services().data
            if not any(profile.id == profile_id for profile in data.profiles()):
                raise NotFoundError("Profile not found")
            record_id, created = data.upsert_record(data.records(), profile_id, record_type, status, record_date)
            current_app.logger.info(
                f"{'Created' if created else 'Updated'} {record_type} record for profile {profile_id}"
            )
            response = json_success({"id": record_id, "created": created})
            return (response, 201) if created else response
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to save record", e)

    @app.route("/api/records/<int:record_id>", methods=["PATCH"])
    @login_required
    def api_update_record(record_id):
        try:
            body = json_body()
            status = string_field(body, "status")
            record_date = string_field(body, "date")
            if status is None and record_date is None:
                raise ValidationError("No valid fields to update")
            services().data.update_record(record_id, status=status, record_date=record_date)
            return json_success()
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to update record", e)

    @app.route("/api/records/<int:record_id>", methods=["DELETE"])
    @login_required
    def api_delete_record(record_id):
        try:
            services().data.delete_record(record_id)
            return json_success()
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to delete record", e)

    @app.route("/api/records/bulk", methods=["POST"])
    @login_required
    def api_bulk_records():
        try:
            body = json_body()
            record_type = _required_string(body, "type")
            status = _required_string(body, "status")
            record_date = _record_date(body)
            profile_ids = body.get("profileIds")
            if not isinstance(profile_ids, list) or not all(
                isinstance(value, int) and not isinstance(value, bool) for value in profile_ids
            ):
                raise ValidationError("profileIds must be a list of numbers")

            data = services().data
            profiles_by_id = {profile.id: profile for profile in data.profiles()}
            records = data.records()
            created = updated = skipped = 0
            for profile_id in dict.fromkeys(profile_ids):
                profile = profiles_by_id.get(profile_id)
                if profile is None or profile.is_group:
                    skipped += 1
                    continue
                _, was_created = data.upsert_record(records, profile_id, record_type, status, record_date)
                if was_created:
                    created += 1
                else:
                    updated += 1

            current_app.logger.info(
                f"Bulk {record_type} records: {created} created, {updated} updated, {skipped} skipped"
            )
            return json_success({"created": created, "updated": updated, "skipped": skipped})
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to apply bulk records", e)
