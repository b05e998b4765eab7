"""
Vigil Structured Logging

Provides a configured logger for Vigil using stdlib logging with
structured context.

Usage:
    from vigil.logging import get_logger

    logger = get_logger("vigil.execution")
    logger.info("Tool executed", extra={"tool_name": "create_task", "user_id": "u-1"})

For production, configure with JSON output:
    from vigil.logging import configure_logging
    configure_logging(json_output=True, level="INFO")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Record attributes lifted into the structured payload when present
CONTEXT_FIELDS = (
    "user_id",
    "tool_name",
    "approval_id",
    "audit_log_id",
    "outcome",
    "determined_by",
    "risk_level",
    "duration_ms",
    "request_id",
)


class VigilFormatter(logging.Formatter):
    """Structured log formatter for Vigil.

    Outputs either human-readable or JSON format depending on configuration.
    """

    def __init__(self, json_output: bool = False):
        super().__init__()
        self._json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self._json_output:
            return json.dumps(log_data, default=str)

        extra_keys = {
            k: v for k, v in log_data.items()
            if k not in ("timestamp", "level", "logger", "message", "exception")
        }
        extra_str = ""
        if extra_keys:
            extra_str = " | " + " ".join(f"{k}={v}" for k, v in extra_keys.items())

        line = f"[{log_data['timestamp']}] {record.levelname:8s} {record.name}: {record.getMessage()}{extra_str}"
        if "exception" in log_data:
            line += "\n" + log_data["exception"]
        return line


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
) -> None:
    """Configure Vigil logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: If True, output JSON lines.
    """
    root_logger = logging.getLogger("vigil")
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(VigilFormatter(json_output=json_output))
    root_logger.addHandler(handler)

    root_logger.propagate = False


def get_logger(name: str = "vigil") -> logging.Logger:
    """Get a Vigil logger instance.

    Args:
        name: Logger name (usually a module path like "vigil.approval").
    """
    return logging.getLogger(name)


configure_logging()
