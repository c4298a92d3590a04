"""Structured Logging — JSON formatter and setup for production observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Relationship context (principal_id, counterparty_id, operation) surfaced when present
    - Boolean flags are kept even when False: a half-applied pair logs
      principal_applied / counterparty_applied either way
    - JSON format in production, human-readable in development

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - Timestamp taken from the record, not from format time
    - setup_logging replaces the handler it installed before, so calling it
      twice (reload, tests) never duplicates output
"""

import json
import logging
from datetime import datetime, timezone

CONTEXT_FIELDS = (
    "principal_id", "counterparty_id", "operation", "error_code", "path",
    "changed", "result_count",
    "principal_has_incoming", "requester_has_outgoing",
    "principal_lists_friend", "requester_lists_friend",
    "principal_applied", "counterparty_applied",
)

# SQL echo and per-request access lines drown the relationship events
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with relationship context fields."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update(
            (key, record.__dict__[key]) for key in CONTEXT_FIELDS
            if record.__dict__.get(key) is not None
        )
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


_handler: logging.Handler | None = None


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the root handler (json or text) at the given level."""
    global _handler
    if _handler is not None:
        logging.root.removeHandler(_handler)
    _handler = logging.StreamHandler()
    _handler.setFormatter(
        JSONFormatter() if fmt == "json"
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"),
    )
    logging.root.addHandler(_handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
