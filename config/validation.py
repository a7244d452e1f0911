# config/validation.py

"""
Startup checks for the settings a production tracker cannot run without:
store credentials, list identifiers and the field naming regime.
"""

import os
import sys
from typing import List, Tuple

STORE_CREDENTIALS = (
    "SHAREPOINT_TENANT_ID",
    "SHAREPOINT_CLIENT_ID",
    "SHAREPOINT_CLIENT_SECRET",
    "SHAREPOINT_SITE_URL",
)

REQUIRED_LIST_GUIDS = (
    "GROUPS_LIST_GUID",
    "SESSIONS_LIST_GUID",
    "ENTRIES_LIST_GUID",
    "PROFILES_LIST_GUID",
    "REGULARS_LIST_GUID",
)


def validate_environment(flask_env: str = None) -> Tuple[bool, List[str]]:
    """
    Check that a production deployment can reach the list store.

    Development and testing run against whatever is configured (or against
    in-memory doubles), so only ``production`` is checked.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    if flask_env is None:
        flask_env = os.environ.get("FLASK_ENV", "development")

    if flask_env != "production":
        return True, []

    errors = []

    secret_key = os.environ.get("SECRET_KEY", "")
    if not secret_key or secret_key in ("your-secret-key", "your_secret_key"):
        errors.append(
            "SECRET_KEY is required in production and must not be the default value. "
            'Generate a secure key: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    for name in STORE_CREDENTIALS:
        if not os.environ.get(name):
            errors.append(f"{name} is required in production to reach the list store.")

    for name in REQUIRED_LIST_GUIDS:
        if not os.environ.get(name):
            errors.append(f"{name} is required in production.")

    field_naming = os.environ.get("FIELD_NAMING", "clean").strip().lower()
    if field_naming not in ("clean", "legacy"):
        errors.append("FIELD_NAMING must be 'clean' or 'legacy'.")

    if os.environ.get("EVENTBRITE_API_KEY") and not os.environ.get("EVENTBRITE_ORGANIZATION_ID"):
        errors.append("EVENTBRITE_ORGANIZATION_ID is required when EVENTBRITE_API_KEY is set")

    return not errors, errors


def validate_and_exit(flask_env: str = None) -> None:
    """Print every configuration problem and exit non-zero when any are found."""
    is_valid, errors = validate_environment(flask_env)
    if is_valid:
        return

    rule = "=" * 80
    print(rule, file=sys.stderr)
    print("TRACKER CONFIGURATION INVALID", file=sys.stderr)
    print(rule, file=sys.stderr)
    for number, error in enumerate(errors, 1):
        print(f"{number}. {error}", file=sys.stderr)
    print(rule, file=sys.stderr)
    print("Set the missing values in .env or the host environment.", file=sys.stderr)
    sys.exit(1)
