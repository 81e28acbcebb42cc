"""Structured logging utilities for the price MCP server."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

__all__ = ["LOGGER_NAME", "configure_logging", "log_event", "logger"]

LOGGER_NAME = "price_mcp"

logger = logging.getLogger(LOGGER_NAME)


def log_event(*, event: str, status: str, level: int = logging.INFO, **extra: Any) -> None:
    """Emit a JSON log line describing a session, tool or upstream event."""

    payload: dict[str, Any] = {
        "event": event,
        "status": status,
    }
    for key, value in extra.items():
        if value is not None:
            payload[key] = value
    logger.log(level, json.dumps(payload, sort_keys=True, default=str))


def configure_logging(level: str = "INFO") -> None:
    """Install a timestamped stderr handler on the root logger."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )
