import json
import logging
import os
import sys
from typing import Any, Dict, Optional

from ledger_sync.core.config import Config

# Structured fields passed through `extra=` that are worth printing
EXTRA_FIELDS = (
    "action",
    "status",
    "duration_ms",
    "pending_id",
    "queue_size",
    "synced",
    "failed",
    "error",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, suitable for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                payload[key] = val
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class PrettyFormatter(logging.Formatter):
    """Human-friendly single line with the structured fields appended as key=value."""

    def format(self, record: logging.LogRecord) -> str:
        ts = self.formatTime(record, datefmt="%H:%M:%S")
        parts = [record.levelname, ts, record.name, "-", record.getMessage()]
        ctx = [
            f"{key}={getattr(record, key)}"
            for key in EXTRA_FIELDS
            if getattr(record, key, None) is not None
        ]
        if ctx:
            parts.append("[" + " ".join(ctx) + "]")
        if record.exc_info:
            parts.append("\n" + self.formatException(record.exc_info))
        return " ".join(parts)


def _isatty(stream) -> bool:
    try:
        return hasattr(stream, "isatty") and stream.isatty()
    except ValueError:
        return False


def setup_logging(level: Optional[int | str] = None) -> logging.Logger:
    """Configure the `ledger_sync` logger tree.

    - LOG_FORMAT=pretty forces the readable format
    - LOG_FORMAT=json forces JSON
    - otherwise: pretty if stdout is a TTY, else JSON
    """
    logger = logging.getLogger("ledger_sync")
    logger.setLevel(level or Config.LOG_LEVEL)
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    fmt_env = os.getenv("LOG_FORMAT", "").lower()
    use_pretty = (fmt_env == "pretty") or (fmt_env == "" and _isatty(sys.stdout))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(PrettyFormatter() if use_pretty else JsonFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = "ledger_sync") -> logging.Logger:
    return logging.getLogger(name)
