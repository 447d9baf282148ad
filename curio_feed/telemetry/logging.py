"""Logging setup shared by the CLI and library consumers."""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RESERVED_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_NOISY_LOGGERS = ("urllib3", "requests")


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_FIELDS or key.startswith("_"):
                continue
            payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info

        return json.dumps(payload, ensure_ascii=False, default=str)


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Install a single stderr handler on the root logger.

    Explicit arguments win over ``CURIO_LOG_LEVEL`` / ``CURIO_LOG_FORMAT``.
    ``fmt`` accepts ``plain`` (default) or ``json``.
    """

    level_value = _resolve_level(level or os.getenv("CURIO_LOG_LEVEL", "INFO"))
    fmt_value = (fmt or os.getenv("CURIO_LOG_FORMAT", "plain")).lower()

    handler = logging.StreamHandler()
    if fmt_value in {"json", "structured"}:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(level_value)
    root_logger.handlers = [handler]

    # Connection pool chatter drowns out the acquisition events at DEBUG.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level_value, logging.WARNING))


__all__ = ["configure_logging", "StructuredFormatter"]
