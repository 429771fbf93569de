"""
Event Indexer.

Incremental, resumable sync of the tracked contract event into the local
store, plus the pure pieces it is built from.

Key features:
- Batched log fetching with a derived, monotonic checkpoint
- Deduplication by "<tx_hash>-<log_index>"
- Fixed-delay retry after any failure
- Exact integer aggregation per recipient and per day

The stateful pieces live in ``event_store`` and ``sync_engine``.
"""

from .block_range import estimate_block_at, resolve_end_block, resolve_start_block
from .decoder import decode_log, decode_logs
from .timestamp_estimator import TimestampEstimator
from .types import (
    AggregatedData,
    AggregationResult,
    DailyData,
    LogEvent,
    SyncConfig,
    SyncProgress,
)

__all__ = [
    "AggregatedData",
    "AggregationResult",
    "DailyData",
    "LogEvent",
    "SyncConfig",
    "SyncProgress",
    "TimestampEstimator",
    "decode_log",
    "decode_logs",
    "estimate_block_at",
    "resolve_end_block",
    "resolve_start_block",
]
