"""
Event Indexer Types.

Immutable value objects passed between the decoder, the store, the
sync engine and the aggregation layer.
"""

from dataclasses import dataclass, field
from datetime import datetime

from turbine_tracker.models.enums import SyncStatus


@dataclass(frozen=True, slots=True)
class LogEvent:
    """
    One decoded contract log entry.

    Amounts are base-10 strings of unbounded unsigned integers; use
    ``silence_raw`` / ``usdt_raw`` for arithmetic.
    """

    unique_id: str
    block_number: int
    transaction_hash: str
    log_index: int
    recipient: str
    silence_amount: str
    usdt_amount: str
    timestamp: int  # estimated, ms since epoch

    @property
    def silence_raw(self) -> int:
        return int(self.silence_amount)

    @property
    def usdt_raw(self) -> int:
        return int(self.usdt_amount or "0")


@dataclass(frozen=True, slots=True)
class AggregatedData:
    """Per-recipient rollup; floats are for display only."""

    recipient: str
    total_silence: float
    total_usdt: float
    count: int
    silence_raw: int = 0
    usdt_raw: int = 0


@dataclass(frozen=True, slots=True)
class DailyData:
    """Silence volume for one UTC calendar day."""

    date: str  # YYYY-MM-DD
    total: float


@dataclass(frozen=True, slots=True)
class AggregationResult:
    """Output of a full recompute."""

    all_time: list[AggregatedData] = field(default_factory=list)
    today: list[AggregatedData] = field(default_factory=list)
    daily: list[DailyData] = field(default_factory=list)


@dataclass
class SyncConfig:
    """Runtime options of the sync engine."""

    start_time: datetime | None = None
    end_time: datetime | None = None
    batch_size: int = 1000
    batch_delay: float = 0.2
    retry_delay: float = 5.0
    rpc_switch_delay: float = 0.5
    block_interval_ms: int = 2000
    max_retries: int | None = None

    @property
    def effective_batch_size(self) -> int:
        """Batch size clamped so the loop always advances."""
        return max(1, int(self.batch_size))


@dataclass(frozen=True, slots=True)
class SyncProgress:
    """Point-in-time view of the sync engine for status queries."""

    status: SyncStatus
    scanned_block: int
    head_block: int
    head_timestamp: int
    start_block: int
    end_block: int
    error_message: str | None
    retry_pending: bool
    last_updated: datetime | None

    @property
    def percent(self) -> float:
        """Scan progress over [start_block, end_block or head]."""
        total = (self.end_block or self.head_block) - self.start_block
        if total <= 0:
            return 0.0
        current = self.scanned_block - self.start_block
        return max(0.0, min(current / total * 100, 100.0))
