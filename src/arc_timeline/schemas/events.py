"""Timeline event data contracts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TimelineEventType(str, Enum):
    """Notifications published by the recorder."""

    SEGMENT_CREATED = "segment_created"
    PROCESSING_COMPLETED = "processing_completed"


class TimelineEvent(BaseModel):
    """A single published notification."""

    event_type: TimelineEventType
    timestamp: datetime = Field(default_factory=datetime.now)
    cycle: int = Field(default=0, ge=0, description="Recorder cycle that emitted it")
    segment_id: str | None = Field(
        default=None,
        description="Created segment, for segment_created events",
    )
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}
