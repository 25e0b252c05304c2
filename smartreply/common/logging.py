"""Structured logging for SmartReply services.

Level and format can be switched per deployment without touching code:
SMARTREPLY_LOG_LEVEL (e.g. "DEBUG") and SMARTREPLY_LOG_JSON=1.
"""

import logging
import json
import os
import sys
from datetime import datetime, timezone
from typing import Optional

# Extra attributes copied into JSON records when a call site passes them
# through ``extra=...``.
EXTRA_FIELDS = ("conversation_id", "endpoint", "duration_ms", "status")

TEXT_FORMAT = "%(asctime)s [%(service_name)s] %(levelname)s - %(message)s"


class ServiceNameFilter(logging.Filter):
    """Stamp every record with the short service name."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record):
        record.service_name = self.service_name
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including any known extra fields."""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service_name", record.name),
            "message": record.getMessage(),
        }
        entry.update({key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)})
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _env_level(default: int) -> int:
    name = os.environ.get("SMARTREPLY_LOG_LEVEL")
    if not name:
        return default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def _env_json() -> bool:
    return os.environ.get("SMARTREPLY_LOG_JSON", "").lower() in ("1", "true", "yes")


def setup_logging(
    service_name: str,
    level: int = logging.INFO,
    json_output: Optional[bool] = None,
) -> logging.Logger:
    """Return the ``smartreply.<service_name>`` logger, configuring it once.

    Args:
        service_name: Short name shown in every line (e.g. "relay", "sentiment")
        level: Logging level, overridden by SMARTREPLY_LOG_LEVEL
        json_output: Force JSON lines on or off; None follows SMARTREPLY_LOG_JSON
    """
    logger = logging.getLogger(f"smartreply.{service_name}")
    if logger.handlers:
        return logger

    level = _env_level(level)
    if json_output is None:
        json_output = _env_json()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ServiceNameFilter(service_name))
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logger.setLevel(level)
    logger.addHandler(handler)
    return logger
