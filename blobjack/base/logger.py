"""
Structured logging for Blobjack.

Provides a pre-configured logger that emits JSON-structured log records
with transfer context (container, operation, key, attempt) for easy
filtering in log aggregation tools.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

_CONTEXT_FIELDS = ("request_id", "provider", "container", "operation", "key", "attempt")


class StructuredFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Attach any extras injected via BlobjackLogger.log_operation
        for key in _CONTEXT_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
        return json.dumps(log_entry)


class BlobjackLogger:
    """Convenience wrapper around :mod:`logging` for Blobjack operations."""

    def __init__(self, name: str = "blobjack") -> None:
        self.logger = logging.getLogger(name)
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)

    def log_operation(
        self,
        level: int,
        message: str,
        *,
        provider: str | None = None,
        container: str | None = None,
        operation: str | None = None,
        key: str | None = None,
        attempt: int | None = None,
        request_id: str | None = None,
        exc_info: bool = False,
    ) -> None:
        """Emit a structured log record with transfer context.

        Args:
            level: Logging level (e.g. logging.INFO).
            message: Human-readable message.
            provider: Provider name.
            container: Container the operation targets.
            operation: Operation name (e.g. 'put', 'create_container').
            key: Object key, where one applies.
            attempt: 1-based attempt number for retried transfers.
            request_id: Optional correlation ID; auto-generated if omitted.
            exc_info: Whether to include exception info.
        """
        if not self.logger.isEnabledFor(level):
            return
        extra = {
            "provider": provider,
            "container": container,
            "operation": operation,
            "key": key,
            "attempt": attempt,
            "request_id": request_id or uuid.uuid4().hex[:12],
        }
        self.logger.log(level, message, extra=extra, exc_info=exc_info)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.DEBUG, message, **kwargs)


# Module-level singleton
bj_logger = BlobjackLogger()
