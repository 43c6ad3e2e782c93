"""
Structured logging for the engine and the HTTP service.

Records are JSON lines so engine events (buys, withdrawals, role changes)
can be ingested as an audit trail.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime
from typing import Optional

ROOT_LOGGER = "proof_of_capital"


class JsonFormatter(logging.Formatter):
    """Compact JSON formatter for structured log ingestion."""

    def format(self, record: logging.LogRecord) -> str:
        ts = record.created or time.time()
        payload = {
            "ts": ts,
            "ts_iso": datetime.fromtimestamp(ts).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"))


def build_logger(
    name: str = ROOT_LOGGER,
    level: int = logging.INFO,
    file_path: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        name: Logger name (module loggers under it inherit the handlers)
        level: Minimum log level
        file_path: Optional JSON-lines file, in addition to stdout

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Idempotent handler setup
    if logger.handlers:
        for h in logger.handlers:
            h.setLevel(level)
        return logger

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(JsonFormatter())
    stream_handler.setLevel(level)
    logger.addHandler(stream_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(JsonFormatter())
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    level: int = logging.INFO,
    **data
) -> None:
    """
    Log a structured event.

    Usage:
        log_event(log, "launch_bought", buyer="0xabc", amount=10**18)
    """
    payload = {"event": event, **data}
    logger.log(level, json.dumps(payload, default=str))
