"""
Logging setup for the intake service.

Two output styles on one stderr handler:

    readable   coloured one-liners with the intake context appended
               ("[submission=12 collection=services]"); development/testing
    json       one JSON object per line; production

``LOG_LEVEL`` overrides the level, ``LOG_FORMAT`` (readable | json) the style.
Context travels as ``extra=`` fields on the log call.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# extra= key → short label used by the readable formatter
CONTEXT_FIELDS = {
    "submission_id": "submission",
    "collection": "collection",
    "ai_key": "ai",
    "previous_status": "from",
    "new_status": "to",
    "request_id": "req",
}
REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr")


def _context(record: logging.LogRecord, keys) -> dict:
    return {k: getattr(record, k) for k in keys if getattr(record, k, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": f"{record.module}:{record.lineno}",
        }
        entry.update(_context(record, REQUEST_FIELDS))
        entry.update(_context(record, CONTEXT_FIELDS))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Coloured developer output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        tags = " ".join(f"{CONTEXT_FIELDS[k]}={v}" for k, v in _context(record, CONTEXT_FIELDS).items())
        if tags:
            line += f" [{tags}]"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" ({duration:.0f}ms)"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _pick_formatter(is_prod: bool) -> logging.Formatter:
    style = os.getenv("LOG_FORMAT", "json" if is_prod else "readable").lower()
    return JSONFormatter() if style == "json" else ReadableFormatter()


def configure_logging(app):
    """
    Install the root stderr handler for ``app``.

    Defaults: DEBUG + readable outside production, INFO + json in
    production. Repeated calls (one per create_app in tests) replace the
    handler instead of stacking them.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_pick_formatter(is_prod))
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Provider SDKs and the HTTP adapters log every request at DEBUG
    for noisy in ("urllib3", "werkzeug", "sqlalchemy.engine", "httpx", "anthropic", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)
    if not is_testing:
        app.logger.info("Logging configured: level=%s formatter=%s",
                        level_name, type(handler.formatter).__name__)
