# tracker_app/routes/stats.py

"""
Dashboard statistics and operational endpoints.
"""

from datetime import datetime, timezone

from flask import Response, current_app, jsonify
from flask_login import login_required
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from tracker_app.errors import TrackerError
from tracker_app.services.enrichment import financial_year_stats
from tracker_app.utils.financial_year import current_financial_year

from .helpers import json_success, server_error, services


def register_stats_routes(app):
    """Register statistics, cache and health routes"""

    @app.route("/api/stats", methods=["GET"])
    @login_required
    def api_stats():
        try:
            data = services().data
            sessions = data.sessions()
            entries = data.entries()
            this_fy = current_financial_year()
            last_fy = this_fy.previous()

            payload = {}
            for key, fy, label in (("thisFY", this_fy, "This FY"), ("lastFY", last_fy, "Last FY")):
                payload[key] = {
                    **financial_year_stats(sessions, entries, fy).to_dict(),
                    "financialYear": fy.label,
                    "label": label,
                }
            return json_success(payload)
        except TrackerError:
            raise
        except Exception as e:
            return server_error("Failed to fetch statistics", e)

    @app.route("/api/health", methods=["GET"])
    def api_health():
        return jsonify(
            {
                "success": True,
                "message": "Server is running",
                "app": current_app.config.get("APP_NAME"),
                "version": current_app.config.get("APP_VERSION"),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    @app.route("/api/cache/clear", methods=["POST"])
    @login_required
    def api_cache_clear():
        try:
            services().data.clear_cache()
            return json_success(message="Cache cleared successfully")
        except Exception as e:
            return server_error("Failed to clear cache", e)

    @app.route("/api/cache/stats", methods=["GET"])
    @login_required
    def api_cache_stats():
        try:
            return json_success(services().data.cache_stats())
        except Exception as e:
            return server_error("Failed to fetch cache stats", e)

    @app.route("/api/config", methods=["GET"])
    @login_required
    def api_config():
        tracker = services()
        feed = tracker.feed
        return json_success(
            {
                "fieldNaming": tracker.naming.name,
                "recordsAvailable": tracker.data.records_available,
                "eventbriteConfigured": bool(getattr(feed, "configured", False)),
                "hoursThreshold": float(current_app.config.get("MEMBER_HOURS_THRESHOLD", 15)),
                "cacheTtlSeconds": tracker.repositories.cache.ttl_seconds,
            }
        )

    @app.route("/metrics", methods=["GET"])
    def metrics():
        if not current_app.config.get("MONITORING_ENABLED"):
            return jsonify({"success": False, "error": "Metrics are disabled"}), 404
        return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)
