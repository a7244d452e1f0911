# tracker_app/routes/__init__.py
"""
Application routes package
"""

from flask import current_app, jsonify

from tracker_app.errors import TrackerError

from .entries import register_entry_routes
from .exports import register_export_routes
from .groups import register_group_routes
from .profiles import register_profile_routes
from .records import register_record_routes
from .sessions import register_session_routes
from .stats import register_stats_routes
from .sync import register_sync_routes

__all__ = ["init_routes", "register_error_handlers"]


def register_error_handlers(app):
    """Render tracker errors and HTTP failures as JSON"""

    @app.errorhandler(TrackerError)
    def tracker_error(error):
        log = current_app.logger.warning if error.status_code < 500 else current_app.logger.error
        log(f"{error.__class__.__name__}: {error.message}", extra={"status_code": error.status_code})
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({"success": False, "error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({"success": False, "error": "Internal server error"}), 500


def init_routes(app):
    """Initialize all application routes"""
    register_export_routes(app)
    register_group_routes(app)
    register_session_routes(app)
    register_entry_routes(app)
    register_profile_routes(app)
    register_record_routes(app)
    register_stats_routes(app)
    register_sync_routes(app)
    register_error_handlers(app)
