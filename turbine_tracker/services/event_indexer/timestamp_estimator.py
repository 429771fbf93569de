"""
Timestamp Estimator.

Linear block-time model: fetching a header per event is too slow, so
event timestamps are extrapolated from one known (block, time) anchor.
"""

from typing import NamedTuple

from turbine_tracker.config.constants import (
    BLOCK_INTERVAL_MS,
    FALLBACK_ANCHOR_BLOCK,
    FALLBACK_ANCHOR_TIMESTAMP_MS,
)


class Anchor(NamedTuple):
    block: int
    timestamp_ms: int


class TimestampEstimator:
    """
    Estimate wall-clock time of a block from an anchor.

    The anchor is replaced as a single tuple, so a reader never sees the
    block of one anchor paired with the timestamp of another. Results are
    unbounded: blocks far from the anchor may map to negative or future
    times.
    """

    def __init__(
        self,
        anchor_block: int = FALLBACK_ANCHOR_BLOCK,
        anchor_timestamp_ms: int = FALLBACK_ANCHOR_TIMESTAMP_MS,
        block_interval_ms: int = BLOCK_INTERVAL_MS,
    ) -> None:
        self._anchor = Anchor(anchor_block, anchor_timestamp_ms)
        self.block_interval_ms = block_interval_ms

    @property
    def anchor(self) -> Anchor:
        return self._anchor

    def update_anchor(self, block: int, timestamp_ms: int) -> None:
        """Replace the anchor pair."""
        self._anchor = Anchor(block, timestamp_ms)

    def estimate(self, block_number: int) -> int:
        """Estimated timestamp (ms since epoch) of ``block_number``."""
        anchor = self._anchor
        return (
            anchor.timestamp_ms
            + (block_number - anchor.block) * self.block_interval_ms
        )
