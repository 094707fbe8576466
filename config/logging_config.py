"""
Logging setup for the API process.

Text output for local development, one JSON object per line for log
aggregators (``LOG_FORMAT=json``).
"""
import json
import logging
import sys
import traceback
from datetime import datetime, timezone

from config.settings import LOG_FORMAT, LOG_LEVEL

EXTRA_FIELDS = ("user_id", "quiz_id", "attempt_id", "path", "status_code", "duration_ms")


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = LOG_LEVEL, fmt: str = LOG_FORMAT):
    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())

    # uvicorn access logs duplicate the request tracker
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
