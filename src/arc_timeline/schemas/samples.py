"""Locomotion sample data contracts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class MotionState(str, Enum):
    """Motion classification attached to every sample by the sample source."""

    MOVING = "moving"
    UNCERTAIN = "uncertain"
    STATIONARY = "stationary"


class LocomotionSample(BaseModel):
    """A single classified location sample.

    Only ``timestamp`` and ``motion_state`` drive segmentation. Coordinates
    are optional and used by the default scoring policy for geometry.
    """

    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the sample was taken",
    )
    motion_state: MotionState = Field(..., description="Classified motion state")

    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    horizontal_accuracy: float | None = Field(
        default=None,
        ge=0.0,
        description="Horizontal accuracy radius in metres",
    )

    extras: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional fields for forward compatibility",
    )

    model_config = {"frozen": False}

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None
