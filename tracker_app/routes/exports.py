# tracker_app/routes/exports.py

"""
CSV exports for spreadsheets: session hours, filtered profile hours and
consent records. Every file starts with a UTF-8 BOM.
"""

from datetime import date

from flask import current_app, request
from flask_login import login_required

from tracker_app.errors import TrackerError, ValidationError
from tracker_app.services.enrichment import (
    ProfileStats,
    aggregate_profile_stats,
    enrich_sessions,
    records_by_profile,
    sort_sessions_by_date,
)
from tracker_app.utils.financial_year import current_financial_year, parse_date
from tracker_app.utils.identifiers import round_hours

from .helpers import csv_response, dated_filename, server_error, services

FY_FILTERS = ("thisFy", "lastFy", "all")
HOURS_FILTERS = {
    "0": lambda hours: hours == 0,
    "lt15": lambda hours: 0 < hours < 15,
    "15plus": lambda hours: hours >= 15,
    "15to30": lambda hours: 15 <= hours <= 30,
    "30plus": lambda hours: hours > 30,
}


def format_record_date(value):
    """Short day-month-year form, e.g. ``8 Sep 2025``."""
    parsed = parse_date(value)
    if parsed is None:
        return value or ""
    return f"{parsed.day} {parsed.strftime('%b')} {parsed.year}"


def _fy_values(stats, fy_filter):
    totals = stats.to_dict()
    if fy_filter == "lastFy":
        return totals["sessionsLastFY"], totals["hoursLastFY"]
    if fy_filter == "all":
        return (
            totals["sessionsThisFY"] + totals["sessionsLastFY"],
            round_hours(totals["hoursThisFY"] + totals["hoursLastFY"]),
        )
    return totals["sessionsThisFY"], totals["hoursThisFY"]


def _matches_record_filter(records, record_type, record_status):
    if record_type:
        typed = [record for record in records if record.type == record_type]
        if record_status == "none":
            return not typed
        if record_status:
            return any(record.status == record_status for record in typed)
        return bool(typed)
    if record_status == "none":
        return not records
    return True


def register_export_routes(app):
    """Register CSV export routes"""

    @app.route("/api/sessions/export", methods=["GET"])
    @login_required
    def api_export_sessions():
        try:
            data = services().data
            groups = data.groups()
            group_keys = {group.id: group.key for group in groups}
            fy = current_financial_year()
            today = date.today()

            enriched = sort_sessions_by_date(enrich_sessions(data.sessions(), data.entries(), groups))
            rows = [
                [
                    group_keys.get(item.session.group_id, ""),
                    item.session.date_key,
                    item.registrations,
                    item.hours,
                    item.session.display_name or "",
                ]
                for item in enriched
                if item.session.financial_year == fy.start_year and item.session_date <= today
            ]
            current_app.logger.info(f"Exporting {len(rows)} sessions for {fy.label}")
            return csv_response(
                ["Group Key", "Date", "Count", "Hours", "Display Name"], rows, dated_filename("Hours")
            )
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to export sessions", e)

    @app.route("/api/profiles/export", methods=["GET"])
    @login_required
    def api_export_profiles():
        try:
            fy_filter = request.args.get("fy", "thisFy")
            if fy_filter not in FY_FILTERS:
                raise ValidationError(f"fy must be one of {', '.join(FY_FILTERS)}")
            hours_filter = request.args.get("hours", "")
            if hours_filter and hours_filter not in HOURS_FILTERS:
                raise ValidationError(f"hours must be one of {', '.join(HOURS_FILTERS)}")
            type_filter = request.args.get("type", "")
            search = request.args.get("search", "").strip().lower()
            record_type = request.args.get("recordType", "")
            record_status = request.args.get("recordStatus", "")

            data = services().data
            group_id = None
            group_key = request.args.get("group")
            if group_key:
                group = data.find_group_by_key(data.groups(), group_key)
                group_id = group.id if group else None

            stats = aggregate_profile_stats(
                data.entries(), data.sessions(), current_financial_year(), group_id=group_id
            )
            grouped_records = records_by_profile(data.records())

            rows = []
            for profile in data.profiles():
                email = profile.email or ""
                if search and search not in profile.name.lower() and search not in email.lower():
                    continue
                if type_filter == "individuals" and profile.is_group:
                    continue
                if type_filter == "groups" and not profile.is_group:
                    continue
                if not _matches_record_filter(grouped_records.get(profile.id, []), record_type, record_status):
                    continue

                sessions_count, hours = _fy_values(stats.get(profile.id) or ProfileStats(), fy_filter)
                if hours_filter and not HOURS_FILTERS[hours_filter](hours):
                    continue
                if fy_filter != "all" and hours_filter != "0" and hours == 0 and sessions_count == 0:
                    continue
                rows.append([profile.name, email, sessions_count, hours])

            rows.sort(key=lambda row: row[0].lower())
            return csv_response(["Name", "Email", "Sessions", "Hours"], rows, dated_filename("Profiles"))
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to export profiles", e)

    @app.route("/api/records/export", methods=["GET"])
    @login_required
    def api_export_records():
        try:
            data = services().data
            if not data.records_available:
                raise ValidationError("Records list not configured")

            records = data.records()
            stats = aggregate_profile_stats(data.entries(), data.sessions(), current_financial_year())
            profiles_by_id = {profile.id: profile for profile in data.profiles()}
            record_types = sorted({record.type for record in records if record.type})

            rows = []
            for profile_id, profile_records in records_by_profile(records).items():
                profile = profiles_by_id.get(profile_id)
                if profile is None:
                    continue
                by_type = {record.type: record for record in profile_records}
                totals = (stats.get(profile_id) or ProfileStats()).to_dict()
                columns = []
                for record_type in record_types:
                    record = by_type.get(record_type)
                    if record is None:
                        columns.append("")
                    elif record.date:
                        columns.append(f"{record.status} · {format_record_date(record.date)}")
                    else:
                        columns.append(record.status)
                rows.append([profile.name, profile.email or "", totals["hoursLastFY"], totals["hoursThisFY"], *columns])

            rows.sort(key=lambda row: row[0].lower())
            return csv_response(
                ["Name", "Email", "Hours Last FY", "Hours This FY", *record_types], rows, dated_filename("Records")
            )
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to export records", e)
