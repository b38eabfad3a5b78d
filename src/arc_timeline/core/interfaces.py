"""Abstract base classes for the engine's external collaborators.

The engine consumes samples from a SampleSource and delegates every
numeric judgement about segments to a ScoringPolicy. It only ever
compares the ordinal results.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arc_timeline.schemas import LocomotionSample, MergeScore, Segment


# =============================================================================
# Sample Source
# =============================================================================


class SampleSource(ABC):
    """Abstract interface for classified location sample streams.

    Implementations might include:
    - A live locomotion classifier
    - File replay
    - Synthetic test data

    Samples must be delivered one at a time in non-decreasing timestamp
    order.
    """

    @abstractmethod
    def get_sample(self) -> LocomotionSample:
        """Get the next sample.

        Returns:
            The next available LocomotionSample.
        """
        ...

    @abstractmethod
    def has_samples(self) -> bool:
        """Check if more samples are available.

        Returns:
            True if get_sample() can be called again.
        """
        ...

    def start(self) -> None:
        """Begin producing samples. Called when recording starts."""
        pass

    def stop(self) -> None:
        """Stop producing samples. Called when recording stops."""
        pass

    def reset(self) -> None:
        """Rewind to the first sample.

        Optional - implementations may choose not to support reset.
        """
        pass


# =============================================================================
# Scoring Policy
# =============================================================================


class ScoringPolicy(ABC):
    """Abstract interface for segment and merge quality judgements.

    All results are ordinal. The engine never inspects the formulas,
    only compares verdicts and scores.
    """

    @abstractmethod
    def is_worth_keeping(self, segment: Segment) -> bool:
        """Whether the segment represents a real, retainable unit.

        Args:
            segment: Segment to judge.

        Returns:
            True if the segment should count as a keeper.
        """
        ...

    @abstractmethod
    def keepness_score(self, segment: Segment) -> int:
        """Ordinal confidence that the segment is real rather than noise.

        Args:
            segment: Segment to judge.

        Returns:
            Higher is more confident.
        """
        ...

    @abstractmethod
    def score_merge(
        self,
        keeper: Segment,
        deadman: Segment,
        betweener: Segment | None = None,
    ) -> MergeScore:
        """Score absorbing ``deadman`` (and ``betweener``) into ``keeper``.

        Args:
            keeper: Segment that would survive.
            deadman: Segment that would be absorbed.
            betweener: Optional segment between them, also absorbed.

        Returns:
            MergeScore, IMPOSSIBLE to refuse the merge outright.
        """
        ...

    @abstractmethod
    def sanitize_edges(self, segment: Segment) -> None:
        """Clean up the segment's boundary samples in place.

        Called on each segment before any scoring that involves it.

        Args:
            segment: Active segment to tidy.
        """
        ...
