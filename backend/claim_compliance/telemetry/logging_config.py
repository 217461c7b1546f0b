"""
Logging setup for validation runs.

Every record is stamped with the active run id by `RunIdFilter`, so both
the plain-text and the JSON output can tie a line to the validation run or
batch that produced it.
"""

import json
import logging
from datetime import datetime, timezone

from claim_compliance.telemetry.run_context import get_run_id

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(run_id)s] %(message)s"

# Optional `extra=` keys copied into JSON output when a record carries them
RECORD_EXTRAS = ("claim_id", "duration_ms")


class RunIdFilter(logging.Filter):
    """Attach the current run id (or "-") to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = get_run_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "run_id": getattr(record, "run_id", None) or get_run_id(),
            "message": record.getMessage(),
        }
        payload.update({key: getattr(record, key) for key in RECORD_EXTRAS if hasattr(record, key)})
        if record.exc_info and record.exc_info[1]:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(log_level: str = "INFO", json_logs: bool = True) -> logging.Handler:
    """Install a single run-aware root handler, JSON or plain text. Returns the handler."""
    handler = logging.StreamHandler()
    handler.addFilter(RunIdFilter())
    handler.setFormatter(JSONFormatter() if json_logs else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    return handler
