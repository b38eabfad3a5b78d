"""Structured logging for the timeline engine.

Every decision the engine takes (sample accepted or dropped, segment
opened, merge chosen, segments finalized or released) is logged with a
category prefix and enough context to replay the reasoning afterwards.

This module provides:
- LogCategory: Predefined log categories for consistent filtering
- StructuredLogger: Category-prefixed logging with timestamps and context
- SessionLogger: Session-aware logging to files
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, TextIO

# =============================================================================
# LOG CATEGORIES
# =============================================================================

class LogCategory(str, Enum):
    """Log categories, one per engine component."""
    SAMPLE = "SAMPLE"                # Sample intake and rate limiting
    SEGMENT = "SEGMENT"              # Segment creation and continuation
    CONSOLIDATION = "CONSOLIDATION"  # Merge candidates and applied merges
    RETENTION = "RETENTION"          # Promotion and expiry
    EVENT = "EVENT"                  # Published timeline events
    INVARIANT = "INVARIANT"          # Invariant checks and violations
    SYSTEM = "SYSTEM"                # Recording start/stop, sessions


# =============================================================================
# LOG LEVELS
# =============================================================================

class LogLevel(str, Enum):
    """Log levels for filtering."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# Map to standard logging levels
_LEVEL_MAP = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


# =============================================================================
# LOG ENTRY
# =============================================================================

class LogEntry:
    """A structured log entry.

    Named context fields (cycle, segment_id, score) are promoted to
    attributes; anything else passed as a keyword lands in ``context``.
    """

    def __init__(
        self,
        category: LogCategory,
        level: LogLevel,
        message: str,
        cycle: int | None = None,
        segment_id: str | None = None,
        score: str | None = None,
        extras: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        self.timestamp = datetime.now()
        self.category = category
        self.level = level
        self.message = message
        self.cycle = cycle
        self.segment_id = segment_id
        self.score = score
        self.extras = extras or {}
        self.context = dict(kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        d: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "category": self.category.value,
            "level": self.level.value,
            "message": self.message,
        }
        if self.cycle is not None:
            d["cycle"] = self.cycle
        if self.segment_id is not None:
            d["segment_id"] = self.segment_id
        if self.score is not None:
            d["score"] = self.score
        if self.extras:
            d["extras"] = self.extras
        if self.context:
            d["context"] = self.context
        return d

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def format_console(self) -> str:
        """Format for console output with category prefix."""
        ts = self.timestamp.strftime("%H:%M:%S.%f")[:-3]
        prefix = f"[{self.category.value}]"

        context_parts = []
        if self.cycle is not None:
            context_parts.append(f"cycle={self.cycle}")
        if self.segment_id:
            context_parts.append(f"seg={self.segment_id[:12]}")
        if self.score:
            context_parts.append(f"score={self.score}")

        context_str = f" ({', '.join(context_parts)})" if context_parts else ""

        return f"{ts} {prefix:16} {self.message}{context_str}"


# =============================================================================
# STRUCTURED LOGGER
# =============================================================================

class StructuredLogger:
    """Category-prefixed structured logger.

    Keeps an in-memory history of accepted entries so tests and the CLI
    can inspect what the engine decided.
    """

    def __init__(
        self,
        name: str = "arc_timeline",
        level: LogLevel = LogLevel.INFO,
        console_output: bool = True,
        file_output: TextIO | None = None,
        json_output: bool = False,
        max_history: int = 10000,
    ):
        """Initialize the structured logger.

        Args:
            name: Logger name
            level: Minimum log level
            console_output: Whether to output to console
            file_output: Optional file handle for output
            json_output: Whether to use JSON format for file output
            max_history: Entries retained for inspection
        """
        self._name = name
        self._level = level
        self._console_output = console_output
        self._file_output = file_output
        self._json_output = json_output

        self._counts: dict[LogCategory, int] = {cat: 0 for cat in LogCategory}
        self._error_count = 0
        self._warning_count = 0

        self._entries: list[LogEntry] = []
        self._max_history = max_history

        self._disabled_categories: set[LogCategory] = set()

    @property
    def name(self) -> str:
        return self._name

    def log(
        self,
        category: LogCategory,
        level: LogLevel,
        message: str,
        **kwargs: Any,
    ) -> LogEntry:
        """Log a structured entry.

        Args:
            category: Log category
            level: Log level
            message: Log message
            **kwargs: Additional context (cycle, segment_id, score, ...)

        Returns:
            The created LogEntry (even when filtered out)
        """
        entry = LogEntry(category, level, message, **kwargs)

        if _LEVEL_MAP[level] < _LEVEL_MAP[self._level]:
            return entry
        if category in self._disabled_categories:
            return entry

        self._counts[category] += 1
        if level in (LogLevel.ERROR, LogLevel.CRITICAL):
            self._error_count += 1
        elif level == LogLevel.WARNING:
            self._warning_count += 1

        self._entries.append(entry)
        if len(self._entries) > self._max_history:
            self._entries = self._entries[-self._max_history:]

        if self._console_output:
            self._write_console(entry)

        if self._file_output:
            self._write_file(entry)

        return entry

    def _write_console(self, entry: LogEntry) -> None:
        """Write entry to console."""
        output = entry.format_console()

        if sys.stdout.isatty():
            colors = {
                LogLevel.DEBUG: "\033[90m",
                LogLevel.INFO: "\033[0m",
                LogLevel.WARNING: "\033[93m",
                LogLevel.ERROR: "\033[91m",
                LogLevel.CRITICAL: "\033[91;1m",
            }
            reset = "\033[0m"
            output = f"{colors.get(entry.level, '')}{output}{reset}"

        print(output)

    def _write_file(self, entry: LogEntry) -> None:
        """Write entry to file."""
        if self._json_output:
            self._file_output.write(entry.to_json() + "\n")
        else:
            self._file_output.write(entry.format_console() + "\n")
        self._file_output.flush()

    # -------------------------------------------------------------------------
    # CATEGORY-SPECIFIC METHODS
    # -------------------------------------------------------------------------

    def sample(self, message: str, level: LogLevel = LogLevel.DEBUG, **kwargs: Any) -> LogEntry:
        """Log sample intake."""
        return self.log(LogCategory.SAMPLE, level, message, **kwargs)

    def segment(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        """Log segment lifecycle."""
        return self.log(LogCategory.SEGMENT, level, message, **kwargs)

    def consolidation(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        """Log consolidation decisions."""
        return self.log(LogCategory.CONSOLIDATION, level, message, **kwargs)

    def retention(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        """Log promotion and expiry."""
        return self.log(LogCategory.RETENTION, level, message, **kwargs)

    def event(self, message: str, level: LogLevel = LogLevel.DEBUG, **kwargs: Any) -> LogEntry:
        """Log published events."""
        return self.log(LogCategory.EVENT, level, message, **kwargs)

    def invariant(self, message: str, level: LogLevel = LogLevel.WARNING, **kwargs: Any) -> LogEntry:
        """Log invariant checks."""
        return self.log(LogCategory.INVARIANT, level, message, **kwargs)

    def system(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        """Log system operations."""
        return self.log(LogCategory.SYSTEM, level, message, **kwargs)

    def check_invariant(
        self,
        condition: bool,
        invariant_name: str,
        message: str,
        **kwargs: Any,
    ) -> LogEntry:
        """Log the outcome of an invariant check.

        Passing checks go out at DEBUG so a healthy run stays quiet.
        """
        extras = {"invariant": invariant_name, "result": "pass" if condition else "fail"}
        extras.update(kwargs.pop("extras", {}))
        if condition:
            return self.invariant(
                f"PASS: {invariant_name} - {message}",
                level=LogLevel.DEBUG,
                extras=extras,
                **kwargs,
            )
        return self.invariant(
            f"FAIL: {invariant_name} - {message}",
            level=LogLevel.ERROR,
            extras=extras,
            **kwargs,
        )

    # -------------------------------------------------------------------------
    # CONFIGURATION
    # -------------------------------------------------------------------------

    def set_level(self, level: LogLevel) -> None:
        """Set minimum log level."""
        self._level = level

    def disable_categories(self, categories: list[LogCategory]) -> None:
        """Disable specific categories."""
        self._disabled_categories.update(categories)

    def enable_all_categories(self) -> None:
        """Enable all categories."""
        self._disabled_categories.clear()

    # -------------------------------------------------------------------------
    # STATISTICS
    # -------------------------------------------------------------------------

    def get_statistics(self) -> dict[str, Any]:
        """Get logging statistics."""
        return {
            "total": sum(self._counts.values()),
            "by_category": {cat.value: count for cat, count in self._counts.items()},
            "errors": self._error_count,
            "warnings": self._warning_count,
        }

    def get_recent_entries(self, count: int = 100) -> list[LogEntry]:
        """Get the most recent log entries."""
        return self._entries[-count:]

    def filter_by_category(self, category: LogCategory) -> list[LogEntry]:
        """Get all retained entries of a specific category."""
        return [e for e in self._entries if e.category == category]


# =============================================================================
# SESSION LOGGER
# =============================================================================

class SessionLogger:
    """Session-aware logger that writes to a session directory.

    Creates runs/<session_id>/logs/main.log and main.jsonl.
    """

    def __init__(
        self,
        session_id: str,
        runs_dir: str | Path = "runs",
        console_output: bool = True,
        level: LogLevel = LogLevel.INFO,
    ):
        self._session_id = session_id
        self._runs_dir = Path(runs_dir)

        self._session_dir = self._runs_dir / session_id
        self._logs_dir = self._session_dir / "logs"
        self._logs_dir.mkdir(parents=True, exist_ok=True)

        self._main_log_file = open(self._logs_dir / "main.log", "a", encoding="utf-8")
        self._json_log_file = open(self._logs_dir / "main.jsonl", "a", encoding="utf-8")

        self._text_logger = StructuredLogger(
            name=f"session_{session_id}",
            level=level,
            console_output=console_output,
            file_output=self._main_log_file,
            json_output=False,
        )
        self._json_logger = StructuredLogger(
            name=f"session_{session_id}_json",
            level=level,
            console_output=False,
            file_output=self._json_log_file,
            json_output=True,
        )

        self.system(f"Session started: {session_id}")

    def log(
        self,
        category: LogCategory,
        level: LogLevel,
        message: str,
        **kwargs: Any,
    ) -> LogEntry:
        """Log to both text and JSON outputs."""
        self._text_logger.log(category, level, message, **kwargs)
        return self._json_logger.log(category, level, message, **kwargs)

    def sample(self, message: str, level: LogLevel = LogLevel.DEBUG, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.SAMPLE, level, message, **kwargs)

    def segment(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.SEGMENT, level, message, **kwargs)

    def consolidation(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.CONSOLIDATION, level, message, **kwargs)

    def retention(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.RETENTION, level, message, **kwargs)

    def event(self, message: str, level: LogLevel = LogLevel.DEBUG, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.EVENT, level, message, **kwargs)

    def invariant(self, message: str, level: LogLevel = LogLevel.WARNING, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.INVARIANT, level, message, **kwargs)

    def system(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.SYSTEM, level, message, **kwargs)

    def check_invariant(
        self,
        condition: bool,
        invariant_name: str,
        message: str,
        **kwargs: Any,
    ) -> LogEntry:
        """Check and log an invariant to both outputs."""
        self._text_logger.check_invariant(condition, invariant_name, message, **kwargs)
        return self._json_logger.check_invariant(condition, invariant_name, message, **kwargs)

    def set_level(self, level: LogLevel) -> None:
        """Set minimum log level."""
        self._text_logger.set_level(level)
        self._json_logger.set_level(level)

    def get_statistics(self) -> dict[str, Any]:
        """Get logging statistics."""
        return self._json_logger.get_statistics()

    def close(self) -> None:
        """Close log files."""
        self.system(f"Session ended: {self._session_id}")
        self._main_log_file.close()
        self._json_log_file.close()

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def session_dir(self) -> Path:
        return self._session_dir

    @property
    def logs_dir(self) -> Path:
        return self._logs_dir


# =============================================================================
# GLOBAL LOGGER INSTANCE
# =============================================================================

_global_logger: StructuredLogger | SessionLogger | None = None


def get_logger() -> StructuredLogger | SessionLogger:
    """Get the global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = StructuredLogger()
    return _global_logger


def set_logger(logger: StructuredLogger | SessionLogger) -> None:
    """Set the global logger instance."""
    global _global_logger
    _global_logger = logger


def create_session_logger(
    session_id: str | None = None,
    runs_dir: str | Path = "runs",
    console_output: bool = True,
    level: LogLevel = LogLevel.INFO,
) -> SessionLogger:
    """Create a session logger and install it as the global logger.

    Args:
        session_id: Session ID (generated from the clock if not provided)
        runs_dir: Base directory for runs
        console_output: Whether to output to console
        level: Minimum log level

    Returns:
        The created session logger
    """
    global _global_logger

    if session_id is None:
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S")

    logger = SessionLogger(
        session_id=session_id,
        runs_dir=runs_dir,
        console_output=console_output,
        level=level,
    )

    _global_logger = logger
    return logger


__all__ = [
    "LogCategory",
    "LogLevel",
    "LogEntry",
    "StructuredLogger",
    "SessionLogger",
    "get_logger",
    "set_logger",
    "create_session_logger",
]
