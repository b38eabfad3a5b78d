"""Engine settings."""

from __future__ import annotations

from datetime import timedelta

from pydantic import BaseModel, Field, field_validator

from arc_timeline.utils.config import (
    DEFAULT_HISTORY_RETENTION_SECONDS,
    DEFAULT_MAX_EVENT_HISTORY,
    DEFAULT_SAMPLES_PER_MINUTE,
)


class TimelineSettings(BaseModel):
    """Settings held by a TimelineRecorder instance.

    Validation runs on construction and on assignment, so the explicit
    setters on the recorder reject bad values the same way.
    """

    samples_per_minute: float = Field(
        default=DEFAULT_SAMPLES_PER_MINUTE,
        gt=0.0,
        description="Target samples per minute; minimum spacing is 60 / this",
    )
    history_retention: timedelta = Field(
        default=timedelta(seconds=DEFAULT_HISTORY_RETENTION_SECONDS),
        description="How long finalized segments are kept after their end",
    )
    verify_invariants: bool = Field(
        default=True,
        description="Check chain invariants after every mutation",
    )
    max_event_history: int = Field(
        default=DEFAULT_MAX_EVENT_HISTORY,
        ge=1,
        description="Timeline events retained by the event bus",
    )

    model_config = {"frozen": False, "validate_assignment": True}

    @field_validator("history_retention")
    @classmethod
    def _non_negative_retention(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("history_retention must not be negative")
        return value

    @property
    def min_sample_interval(self) -> timedelta:
        """Minimum spacing between accepted samples."""
        return timedelta(seconds=60.0 / self.samples_per_minute)
