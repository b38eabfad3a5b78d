"""Per-cycle result data contracts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from arc_timeline.utils.config import LOG_VERSION


class RejectionReason(str, Enum):
    """Why a submitted sample did not start a cycle."""

    NOT_RECORDING = "not_recording"
    RATE_LIMITED = "rate_limited"


class CycleResult(BaseModel):
    """Everything one submit() did, for logging and inspection."""

    cycle: int = Field(..., ge=0, description="Accepted-cycle counter after this submit")
    timestamp: datetime = Field(default_factory=datetime.now)
    sample_timestamp: datetime

    accepted: bool
    rejection: RejectionReason | None = None

    created_segment_id: str | None = None
    merges: list[str] = Field(
        default_factory=list,
        description="Applied merges, rendered keeper <- deadman [score]",
    )
    died_ids: list[str] = Field(default_factory=list)
    promoted_ids: list[str] = Field(default_factory=list)
    expired_ids: list[str] = Field(default_factory=list)

    active_count: int = Field(default=0, ge=0)
    finalized_count: int = Field(default=0, ge=0)
    current_segment_id: str | None = None

    extras: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": False}

    def to_log_dict(self) -> dict[str, Any]:
        """Flatten into a JSON-ready dict for the JSONL run log."""
        return {
            "version": LOG_VERSION,
            "cycle": self.cycle,
            "timestamp": self.timestamp.isoformat(),
            "sample_timestamp": self.sample_timestamp.isoformat(),
            "accepted": self.accepted,
            "rejection": self.rejection.value if self.rejection else None,
            "created_segment_id": self.created_segment_id,
            "merges": list(self.merges),
            "died": list(self.died_ids),
            "promoted": list(self.promoted_ids),
            "expired": list(self.expired_ids),
            "active_count": self.active_count,
            "finalized_count": self.finalized_count,
            "current_segment_id": self.current_segment_id,
            "extras": self.extras,
        }
