"""Utility functions and configuration."""

from arc_timeline.utils.config import (
    DEFAULT_HISTORY_RETENTION_SECONDS,
    DEFAULT_SAMPLES_PER_MINUTE,
)
from arc_timeline.utils.logging import (
    create_session_logger,
    get_logger,
    LogCategory,
    LogEntry,
    LogLevel,
    SessionLogger,
    set_logger,
    StructuredLogger,
)

__all__ = [
    "DEFAULT_HISTORY_RETENTION_SECONDS",
    "DEFAULT_SAMPLES_PER_MINUTE",
    "create_session_logger",
    "get_logger",
    "LogCategory",
    "LogEntry",
    "LogLevel",
    "SessionLogger",
    "set_logger",
    "StructuredLogger",
]
