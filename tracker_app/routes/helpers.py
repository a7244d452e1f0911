# tracker_app/routes/helpers.py
"""
Shared helpers for the JSON and CSV route handlers.
"""

import csv
import io
from datetime import date

from flask import Response, current_app, jsonify, request

from tracker_app.errors import ValidationError
from tracker_app.extension import get_services

CSV_BOM = "﻿"


def services():
    return get_services()


def json_success(data=None, count=None, **extra):
    payload = {"success": True}
    if data is not None:
        payload["data"] = data
    if count is not None:
        payload["count"] = count
    payload.update(extra)
    return jsonify(payload)


def server_error(error_message, exc):
    """Log an unexpected failure and return the generic 500 payload."""
    current_app.logger.error(f"{error_message}: {str(exc)}", exc_info=True)
    return jsonify({"success": False, "error": error_message, "message": str(exc)}), 500


def json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON data")
    return data


def optional_string(data, key):
    value = data.get(key)
    return value if isinstance(value, str) else None


def string_field(data, key):
    """Return ``data[key]`` when present; a present non-string rejects the request."""
    if key not in data:
        return None
    value = data[key]
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def bool_field(data, key):
    if key not in data:
        return None
    value = data[key]
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be a boolean")
    return value



def csv_response(header, rows, filename):
    """Build a UTF-8 CSV download with a leading BOM."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    body = CSV_BOM + buffer.getvalue()
    return Response(
        body.encode("utf-8"),
        mimetype="text/csv",
        headers={
            "Content-Type": "text/csv; charset=utf-8",
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )


def dated_filename(label):
    return f"{date.today().isoformat()} {label}.csv"
