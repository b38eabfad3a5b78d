"""Run output: JSONL cycle logs and their post-hoc analysis."""

from arc_timeline.metrics.logging import LogAnalyzer, LogWriter

__all__ = ["LogAnalyzer", "LogWriter"]
