"""
Structured logging configuration.

- Production: one JSON object per line on stderr
- Development / tests: colored single-line output
- Level: ``LOG_LEVEL`` from the app config (env ``LOG_LEVEL``)

Services log routing events with workflow context in ``extra=``::

    logger.info("File marked", extra={"file_id": 7, "user_id": 3,
                                      "to_user_id": 9, "workflow_state": "EXTERNAL"})

Those keys become top-level JSON fields.  Inside a request, every record is
also stamped with the request id so service lines can be joined to the
access line written by ``efiling.middleware.timing``.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Context attributes promoted from ``extra=`` into the JSON body, in output order.
CONTEXT_KEYS = (
    "request_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "file_id",
    "user_id",
    "to_user_id",
    "workflow_state",
    "manager_id",
    "team_role",
)

_NOISY_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine", "flask_limiter")


class RequestIdFilter(logging.Filter):
    """Copy ``g.request_id`` onto records emitted while a request is active."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None and has_request_context():
            record.request_id = getattr(g, "request_id", None)
        return True


class JSONFormatter(logging.Formatter):
    """JSON lines for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            (key, getattr(record, key))
            for key in CONTEXT_KEYS
            if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored one-liners; routing context is shortened to ``(file=7, user=3 -> 9)``."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    @staticmethod
    def _context(record):
        parts = []
        file_id = getattr(record, "file_id", None)
        if file_id is not None:
            parts.append(f"file={file_id}")
        user_id = getattr(record, "user_id", None)
        to_user_id = getattr(record, "to_user_id", None)
        if user_id is not None:
            parts.append(f"user={user_id}" + (f" -> {to_user_id}" if to_user_id is not None else ""))
        return f" ({', '.join(parts)})" if parts else ""

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        duration = getattr(record, "duration_ms", None)
        timing = f" [{duration:.0f}ms]" if duration is not None else ""
        line = (
            f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}: "
            f"{record.getMessage()}{self._context(record)}{timing}"
        )
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install a single stderr handler on the root logger.

    JSON unless the app runs with DEBUG or TESTING.  Any handlers already on
    the root logger are replaced, so repeated app creation in tests does not
    duplicate output.
    """
    is_testing = app.config.get("TESTING", False)
    use_json = not app.config.get("DEBUG", False) and not is_testing

    default_level = "INFO" if use_json else "DEBUG"
    level_name = (app.config.get("LOG_LEVEL") or default_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if use_json else ReadableFormatter())
    handler.addFilter(RequestIdFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "JSON" if use_json else "readable")
