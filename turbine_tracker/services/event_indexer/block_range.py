"""
Block range estimation.

Maps configured start/end times to block numbers relative to the chain
head, assuming a constant block interval.
"""

from datetime import datetime

from turbine_tracker.config.constants import BLOCK_INTERVAL_MS
from turbine_tracker.utils.datetime_utils import to_epoch_ms


def estimate_block_at(
    target_ms: int,
    head_block: int,
    head_timestamp_ms: int,
    block_interval_ms: int = BLOCK_INTERVAL_MS,
) -> int:
    """
    Estimate the block produced at ``target_ms``.

    blocks_ago = floor((head_ts - target) / interval); the result is
    head - blocks_ago, never below 0. A target after the head timestamp
    clamps to the head block.

    Args:
        target_ms: Target time in ms since epoch
        head_block: Current chain head
        head_timestamp_ms: Head block timestamp in ms
        block_interval_ms: Assumed block interval

    Returns:
        Estimated block number
    """
    blocks_ago = max(0, (head_timestamp_ms - target_ms) // block_interval_ms)
    return max(0, head_block - blocks_ago)


def resolve_start_block(
    start_time: datetime,
    head_block: int,
    head_timestamp_ms: int,
    block_interval_ms: int = BLOCK_INTERVAL_MS,
) -> int:
    """Block corresponding to the configured start time."""
    return estimate_block_at(
        to_epoch_ms(start_time), head_block, head_timestamp_ms, block_interval_ms
    )


def resolve_end_block(
    end_time: datetime | None,
    head_block: int,
    head_timestamp_ms: int,
    block_interval_ms: int = BLOCK_INTERVAL_MS,
) -> int:
    """
    Upper bound of a sync session.

    The chain head, or the block of the configured end time when that
    is earlier.
    """
    if end_time is None:
        return head_block
    end_block = estimate_block_at(
        to_epoch_ms(end_time), head_block, head_timestamp_ms, block_interval_ms
    )
    return min(head_block, end_block)
