"""
API authentication via Flask-Login.

Requests authenticate with the shared ``X-API-Key`` header (used by the
scheduler that triggers feed syncs). Interactive sign-in is handled by the
hosting identity provider in front of the app and is out of scope here.
"""

from __future__ import annotations

import hmac

from flask import current_app, jsonify
from flask_login import LoginManager, UserMixin

API_KEY_HEADER = "X-API-Key"


class ApiUser(UserMixin):
    """The identity attached to a request that presented a valid API key."""

    def __init__(self, user_id: str = "api-key", role: str = "admin") -> None:
        self.id = user_id
        self.role = role


def init_auth(login_manager: LoginManager) -> None:
    @login_manager.user_loader
    def load_user(user_id):
        # No server-side user store; identities only come from request headers
        return None

    @login_manager.request_loader
    def load_user_from_request(request):
        expected = current_app.config.get("API_KEY")
        provided = request.headers.get(API_KEY_HEADER)
        if not expected or not provided:
            return None
        if hmac.compare_digest(str(expected), str(provided)):
            return ApiUser()
        current_app.logger.warning("Rejected request with invalid API key", extra={"path": request.path})
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"success": False, "error": "Authentication required"}), 401
