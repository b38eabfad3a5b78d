"""JSONL logging utilities for run output.

This module provides:
- LogWriter: One JSON object per processing cycle
- LogAnalyzer: Post-hoc summary of a written cycle log
"""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from arc_timeline.schemas import CycleResult


# =============================================================================
# Core Log Writer
# =============================================================================

class LogWriter:
    """Writes cycle results to a JSONL log file.

    Creates a consistent log format with one JSON object per line.
    """

    def __init__(self, log_path: Path) -> None:
        """Initialize the log writer.

        Args:
            log_path: Path to the JSONL log file.
        """
        self._log_path = log_path
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self._log_path, "a", encoding="utf-8")
        self._written = 0

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def written(self) -> int:
        """Number of records written so far."""
        return self._written

    def write(self, cycle_result: CycleResult) -> None:
        """Write a cycle result to the log.

        Args:
            cycle_result: The cycle result to log.
        """
        line = json.dumps(cycle_result.to_log_dict(), separators=(",", ":"))
        self._file.write(line + "\n")
        self._file.flush()
        self._written += 1

    def close(self) -> None:
        """Close the log file."""
        self._file.close()

    def __enter__(self) -> "LogWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


# =============================================================================
# Log Analyzer for Post-hoc Analysis
# =============================================================================

class LogAnalyzer:
    """Analyze a completed cycle log.

    Load an existing JSONL file and summarise what the run did.
    """

    def __init__(self, log_path: Path) -> None:
        self._log_path = log_path
        self._records: list[dict[str, Any]] = []
        self._loaded = False

    def load(self) -> "LogAnalyzer":
        """Load log file into memory.

        Returns:
            Self for method chaining.
        """
        self._records = []
        with open(self._log_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    self._records.append(json.loads(line))
        self._loaded = True
        return self

    @property
    def record_count(self) -> int:
        return len(self._records)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def get_rejections(self) -> dict[str, int]:
        """Count rejected submissions by reason."""
        self._ensure_loaded()
        return dict(Counter(r["rejection"] for r in self._records if not r.get("accepted")))

    def get_segment_counts(self) -> list[tuple[int, int, int]]:
        """(cycle, active_count, finalized_count) for each accepted cycle."""
        self._ensure_loaded()
        return [
            (r["cycle"], r.get("active_count", 0), r.get("finalized_count", 0))
            for r in self._records
            if r.get("accepted")
        ]

    def summary(self) -> dict[str, Any]:
        """Totals across the whole run."""
        self._ensure_loaded()
        accepted = [r for r in self._records if r.get("accepted")]
        last = accepted[-1] if accepted else {}
        return {
            "submitted": len(self._records),
            "accepted": len(accepted),
            "rejected": self.get_rejections(),
            "segments_created": sum(1 for r in accepted if r.get("created_segment_id")),
            "merges": sum(len(r.get("merges", [])) for r in accepted),
            "promoted": sum(len(r.get("promoted", [])) for r in accepted),
            "expired": sum(len(r.get("expired", [])) for r in accepted),
            "active_count": last.get("active_count", 0),
            "finalized_count": last.get("finalized_count", 0),
        }
