# barbershop/logging_config.py
"""Structured JSON logging configuration."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import get_settings

# Attributes copied from `extra=` into the JSON record when present
EXTRA_FIELDS = (
    "reservation_id",
    "provider_id",
    "service_id",
    "customer_id",
    "booking_date",
    "start_time",
    "error_code",
    "request_path",
)


class JSONFormatter(logging.Formatter):
    """
    Formats log records as one JSON object per line.

    Fields: timestamp (ISO 8601, UTC), level, logger, message, any of
    EXTRA_FIELDS found on the record, and exception text if present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging() -> None:
    """
    Install the JSON formatter on a stderr handler of the root logger.

    Level comes from LOG_LEVEL (default INFO).
    """
    settings = get_settings()
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    root_logger.info(f"Logging configured: level={settings.LOG_LEVEL}, format=JSON")
