"""Structured Logging — JSON formatter and setup for production observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (user_id, question_id, contradiction_id, error_code, ...) surfaced when present
    - JSON format in production, human-readable in development
    - setup_logging is idempotent: a second call does not add a second handler

Design Decisions:
    - JSONFormatter over third-party libs: stdlib logging is enough for flat JSON lines
    - setup_logging called once from build_engine
"""

import json
import logging
from datetime import datetime, timezone

_EXTRA_FIELDS: tuple[str, ...] = (
    "user_id", "question_id", "contradiction_id", "error_code", "attempt",
    "stage", "oracle", "model", "candidates", "input_tokens", "output_tokens",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure root logging for the engine."""
    root = logging.getLogger()
    for existing in root.handlers:
        if getattr(existing, "_goodfaith", False):
            root.setLevel(getattr(logging, level.upper(), logging.INFO))
            return

    handler = logging.StreamHandler()
    handler._goodfaith = True  # type: ignore[attr-defined]
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s — %(message)s",
        ))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
