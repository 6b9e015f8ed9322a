from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

SERVICE = "recipe-ingest"

# Attributes every LogRecord carries; anything else on the record came from `extra=`.
_RECORD_FIELDS = frozenset(
    {
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module",
        "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created", "msecs",
        "relativeCreated", "thread", "threadName", "processName", "process", "taskName",
        "message", "asctime",
    }
)


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "ts": _utc_iso(),
            "level": record.levelname,
            "service": SERVICE,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        for k, v in record.__dict__.items():
            if k.startswith("_") or k in _RECORD_FIELDS:
                continue
            if k not in base:
                base[k] = v

        if record.exc_info:
            base["exception"] = self.formatException(record.exc_info)

        return json.dumps(base, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None, *, stream: IO[str] | None = None) -> None:
    """
    Install the JSON formatter on the root logger.

    Called by the command-line entry points only; library modules just log.
    Logs go to stderr so stdout stays free for artifacts.
    """

    lvl = (level or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(lvl)
    root.handlers.clear()

    h = logging.StreamHandler(stream or sys.stderr)
    h.setLevel(lvl)
    h.setFormatter(JsonFormatter())
    root.addHandler(h)

    # Pillow logs every plugin import at debug level.
    logging.getLogger("PIL").setLevel(logging.WARNING)
