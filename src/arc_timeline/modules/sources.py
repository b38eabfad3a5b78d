"""Sample source implementations: scripted synthetic streams and JSONL replay."""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path

import numpy as np
from pydantic import ValidationError

from arc_timeline.core.interfaces import SampleSource
from arc_timeline.schemas import LocomotionSample, MotionState

# Metres per degree of latitude (good enough for synthetic offsets)
_METRES_PER_DEGREE = 111_320.0

# A morning: home, walk, a short stop at a crossing, walk on, office
DEFAULT_COMMUTE: list[tuple[MotionState, float]] = [
    (MotionState.STATIONARY, 600),
    (MotionState.MOVING, 900),
    (MotionState.STATIONARY, 24),
    (MotionState.UNCERTAIN, 60),
    (MotionState.MOVING, 300),
    (MotionState.STATIONARY, 1200),
]


class ScriptedSampleSource(SampleSource):
    """Synthetic sample stream driven by a list of motion phases.

    Produces one sample every ``interval`` seconds. Moving phases walk
    east at ``speed`` m/s; stationary phases jitter around the last
    position. Jitter comes from a seeded generator, so equal arguments
    give identical streams.
    """

    def __init__(
        self,
        phases: list[tuple[MotionState, float]] | None = None,
        interval: float = 6.0,
        start_time: datetime | None = None,
        origin: tuple[float, float] = (51.5007, -0.1246),
        speed: float = 1.4,
        jitter_metres: float = 4.0,
        seed: int = 42,
    ) -> None:
        """Initialize the scripted source.

        Args:
            phases: (motion_state, duration_seconds) pairs, played in order.
            interval: Seconds between samples.
            start_time: Timestamp of the first sample (defaults to now).
            origin: Starting (latitude, longitude).
            speed: Walking speed in metres per second for moving phases.
            jitter_metres: Standard deviation of positional noise.
            seed: Random seed for deterministic behaviour.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._phases = list(phases if phases is not None else DEFAULT_COMMUTE)
        self._interval = interval
        self._start_time = start_time or datetime.now()
        self._origin = origin
        self._speed = speed
        self._jitter = jitter_metres
        self._seed = seed
        self._samples = self._generate()
        self._index = 0

    def _generate(self) -> list[LocomotionSample]:
        rng = np.random.default_rng(self._seed)
        samples: list[LocomotionSample] = []
        lat, lon = self._origin
        elapsed = 0.0

        for motion_state, duration in self._phases:
            phase_end = elapsed + duration
            while elapsed < phase_end:
                if motion_state != MotionState.STATIONARY:
                    lon += (self._speed * self._interval) / (
                        _METRES_PER_DEGREE * np.cos(np.radians(lat))
                    )
                noise = rng.normal(0.0, self._jitter, size=2) / _METRES_PER_DEGREE
                samples.append(
                    LocomotionSample(
                        timestamp=self._start_time + timedelta(seconds=elapsed),
                        motion_state=motion_state,
                        latitude=float(lat + noise[0]),
                        longitude=float(lon + noise[1]),
                        horizontal_accuracy=float(abs(self._jitter)),
                    )
                )
                elapsed += self._interval
        return samples

    def get_sample(self) -> LocomotionSample:
        if not self.has_samples():
            raise IndexError("scripted source is exhausted")
        sample = self._samples[self._index]
        self._index += 1
        return sample

    def has_samples(self) -> bool:
        return self._index < len(self._samples)

    def reset(self) -> None:
        self._index = 0

    @property
    def total_samples(self) -> int:
        return len(self._samples)


class JsonlSampleSource(SampleSource):
    """Replays samples from a JSONL file, one LocomotionSample per line.

    Malformed lines are skipped.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the replay source.

        Args:
            path: JSONL file to read.
        """
        self._path = Path(path)
        self._samples: list[LocomotionSample] = []
        self._skipped = 0
        self._index = 0
        self._load()

    def _load(self) -> None:
        with open(self._path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    self._samples.append(LocomotionSample.model_validate(json.loads(line)))
                except (json.JSONDecodeError, ValidationError):
                    self._skipped += 1
                    continue

    def get_sample(self) -> LocomotionSample:
        if not self.has_samples():
            raise IndexError(f"{self._path} is exhausted")
        sample = self._samples[self._index]
        self._index += 1
        return sample

    def has_samples(self) -> bool:
        return self._index < len(self._samples)

    def reset(self) -> None:
        self._index = 0

    @property
    def skipped_lines(self) -> int:
        return self._skipped

    @property
    def total_samples(self) -> int:
        return len(self._samples)


def write_samples(path: Path, samples: list[LocomotionSample]) -> None:
    """Write samples as JSONL in the format JsonlSampleSource reads."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for sample in samples:
            f.write(sample.model_dump_json() + "\n")
