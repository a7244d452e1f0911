# config/base.py
import os
from datetime import timedelta


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_int(value, default, *, minimum=0):
    """Parse an integer setting, falling back to ``default`` when invalid."""
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    return max(minimum, number)


def _coerce_float(value, default, *, minimum=0.0):
    if value is None or str(value).strip() == "":
        return default
    try:
        number = float(str(value).strip())
    except ValueError:
        return default
    return max(minimum, number)


class Config:
    # SECRET_KEY must be set via environment variable for security
    # Generate with: python -c "import secrets; print(secrets.token_hex(32))"
    _flask_env = os.environ.get("FLASK_ENV", "development")
    _is_testing = _flask_env == "testing"
    _is_production = _flask_env == "production"

    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Only require SECRET_KEY in production mode
    if not SECRET_KEY and _is_production:
        raise ValueError(
            "SECRET_KEY environment variable is required in production. "
            'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    if not SECRET_KEY and not _is_testing:
        import warnings

        warnings.warn(
            "SECRET_KEY not set. Using default for development only. "
            "This is insecure and should not be used in production.",
            UserWarning,
        )
        SECRET_KEY = "dev-secret-key-change-in-production"

    if not SECRET_KEY:
        SECRET_KEY = "test-secret-key-placeholder"

    # Shared key accepted in the X-API-Key header (schedulers, scripts)
    API_KEY = os.environ.get("API_KEY")

    # Remote list store (SharePoint lists via Microsoft Graph)
    SHAREPOINT_TENANT_ID = os.environ.get("SHAREPOINT_TENANT_ID")
    SHAREPOINT_CLIENT_ID = os.environ.get("SHAREPOINT_CLIENT_ID")
    SHAREPOINT_CLIENT_SECRET = os.environ.get("SHAREPOINT_CLIENT_SECRET")
    SHAREPOINT_SITE_URL = os.environ.get("SHAREPOINT_SITE_URL")
    GROUPS_LIST_GUID = os.environ.get("GROUPS_LIST_GUID")
    SESSIONS_LIST_GUID = os.environ.get("SESSIONS_LIST_GUID")
    ENTRIES_LIST_GUID = os.environ.get("ENTRIES_LIST_GUID")
    PROFILES_LIST_GUID = os.environ.get("PROFILES_LIST_GUID")
    REGULARS_LIST_GUID = os.environ.get("REGULARS_LIST_GUID")
    # Optional; consent records are reported unavailable when unset
    RECORDS_LIST_GUID = os.environ.get("RECORDS_LIST_GUID")
    STORE_REQUEST_TIMEOUT = _coerce_float(os.environ.get("STORE_REQUEST_TIMEOUT"), 30.0, minimum=1.0)

    # "clean" or "legacy" column names on the lists
    FIELD_NAMING = os.environ.get("FIELD_NAMING", "clean").strip().lower()
    CACHE_TTL_SECONDS = _coerce_int(os.environ.get("CACHE_TTL_SECONDS"), 300)

    # Events feed (Eventbrite)
    EVENTBRITE_API_KEY = os.environ.get("EVENTBRITE_API_KEY")
    EVENTBRITE_ORGANIZATION_ID = os.environ.get("EVENTBRITE_ORGANIZATION_ID")
    EVENTBRITE_API_URL = os.environ.get("EVENTBRITE_API_URL", "https://www.eventbriteapi.com/v3")
    EVENTBRITE_PRIVACY_QUESTION_ID = os.environ.get("EVENTBRITE_PRIVACY_QUESTION_ID", "315115173")
    EVENTBRITE_PHOTO_QUESTION_ID = os.environ.get("EVENTBRITE_PHOTO_QUESTION_ID", "315115803")
    SYNC_DUPLICATE_THRESHOLD = _coerce_float(os.environ.get("SYNC_DUPLICATE_THRESHOLD"), 0.92)

    MEMBER_HOURS_THRESHOLD = _coerce_float(os.environ.get("MEMBER_HOURS_THRESHOLD"), 15.0)

    # Session configuration
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    JSON_SORT_KEYS = False
    LOGIN_DISABLED = _coerce_bool(os.environ.get("LOGIN_DISABLED"), default=False)


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    LOGIN_DISABLED = True
    API_KEY = "test-api-key"
    CACHE_TTL_SECONDS = 300
    FIELD_NAMING = "clean"


class ProductionConfig(Config):
    DEBUG = False
    SESSION_COOKIE_SECURE = True
    LOGIN_DISABLED = False
