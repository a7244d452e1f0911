# tracker_app/utils/logging_config.py
"""
Logging setup driven by the monitoring config (LOG_LEVEL, LOG_FORMAT, ...).

``json`` format writes one object per line including any ``extra=`` fields so
sync runs and store failures can be searched by record id.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from pythonjsonlogger import jsonlogger

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
JSON_FORMAT = "%(levelname)s %(name)s %(message)s %(module)s"


def _build_formatter(log_format):
    if (log_format or "").lower() == "json":
        return jsonlogger.JsonFormatter(
            JSON_FORMAT,
            rename_fields={"levelname": "level", "name": "logger"},
            timestamp=True,
        )
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(app):
    """Configure root and app loggers from the Flask config."""

    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = _build_formatter(app.config.get("LOG_FORMAT", "text"))

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_tracker_handler", False):
            root.removeHandler(handler)
            handler.close()

    handlers = []
    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        handlers.append(logging.StreamHandler())
    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                os.path.join(log_dir, "tracker.log"),
                maxBytes=int(app.config.get("LOG_FILE_MAX_BYTES", 10485760)),
                backupCount=int(app.config.get("LOG_FILE_BACKUP_COUNT", 10)),
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        handler._tracker_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    root.setLevel(level)
    app.logger.setLevel(level)
    # Quieten per-request connection logging from the HTTP clients
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
    app.logger.debug(
        "Logging configured",
        extra={"log_level": level_name, "log_format": app.config.get("LOG_FORMAT"), "handlers": len(handlers)},
    )
