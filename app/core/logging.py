"""Logging configuration for learning-tracker.

TWO AUDIENCES, TWO FORMATS
----------------------------
The same log stream is read by two very different consumers:

  1. A developer running the tracker locally, tailing stdout while
     clicking through lessons.  They want one short line per event:

       2026-03-02T10:14:07.311+0000 INFO     app.services.tracker_service  \
       Recorded clicked user=u_17 lesson=lesson-2

  2. A log pipeline in production (Loki, CloudWatch, Datadog).  It wants
     one JSON object per line so fields can be filtered without regex:

       {"level": "INFO", "user_id": "u_17", "lesson_id": "lesson-2", ...}

  _ContainerFormatter serves the first, _JsonFormatter the second.
  Set LOG_JSON=true to switch.

WHAT GETS LOGGED WHERE
------------------------
  - Request summary lines come from RequestContextMiddleware.
  - Writes (user registered, event recorded) log at INFO.
  - Report generation logs at INFO with the roster size and filters.
  - Ingestion fallbacks (bad `order`, unparseable links) log at WARNING,
    because they mean the spreadsheet needs a human to look at it.
  - The aggregator itself only logs at DEBUG.
"""

from __future__ import annotations

import json
import logging
import sys


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout.

    - Always: ISO-8601 timestamp, level, logger name, message
    - WARNING+: appends [filename:lineno] so you can locate the guard clause
    - ERROR/CRITICAL: stack trace included when exc_info is present
    """

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        ms = int(record.msecs)
        # Insert .NNN before the timezone offset (last 5 chars: +0000)
        return f"{base[:-5]}.{ms:03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter for log aggregation systems.

    Context fields are attached to LogRecords either by the
    RequestContextMiddleware (request_id, method, path, status_code,
    duration_ms) or by service code through ``extra=`` (user_id,
    lesson_id, event_type, report).  Whichever are present become
    top-level keys.
    """

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
        "user_id",
        "lesson_id",
        "event_type",
        "report",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger to write to stdout.

    Args:
        level_name: Log level string (debug/info/warning/error)
        json_format: If True, emit JSON lines. If False, human-readable.
                     Controlled by LOG_JSON in Settings.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Keep third-party loggers from flooding at DEBUG
    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpcore",
        "httpx",
        "sqlalchemy.engine",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
