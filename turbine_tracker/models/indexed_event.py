"""
Indexed Event model.

One decoded contract log entry, persisted exactly once per
(transaction hash, log index).
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from turbine_tracker.models.base import Base
from turbine_tracker.models.types import AddressType, HashType, RawAmountType

if TYPE_CHECKING:
    from turbine_tracker.services.event_indexer.types import LogEvent


class IndexedEvent(Base):
    """
    Persisted contract event.

    Rows are immutable once inserted; the only deletion path is a full
    reset of the store. Amounts are kept as base-10 strings so that
    uint256 values survive without precision loss.
    """

    __tablename__ = "indexed_events"

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Deduplication key: "<tx_hash>-<log_index>"
    unique_id: Mapped[str] = mapped_column(
        String(80), nullable=False, unique=True, index=True
    )

    # Chain position
    block_number: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )
    transaction_hash: Mapped[str] = mapped_column(
        HashType, nullable=False, index=True
    )
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)

    # Decoded payload
    recipient: Mapped[str] = mapped_column(
        AddressType, nullable=False, index=True
    )  # checksummed
    silence_amount: Mapped[str] = mapped_column(
        RawAmountType, nullable=False
    )
    usdt_amount: Mapped[str] = mapped_column(
        RawAmountType, nullable=False
    )

    # Estimated block time, ms since epoch
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<IndexedEvent(unique_id={self.unique_id[:18]}..., "
            f"block={self.block_number}, recipient={self.recipient})>"
        )

    @classmethod
    def from_domain(cls, event: "LogEvent") -> "IndexedEvent":
        """Build a row from a decoded event."""
        return cls(
            unique_id=event.unique_id,
            block_number=event.block_number,
            transaction_hash=event.transaction_hash,
            log_index=event.log_index,
            recipient=event.recipient,
            silence_amount=event.silence_amount,
            usdt_amount=event.usdt_amount,
            timestamp=event.timestamp,
        )

    def to_domain(self) -> "LogEvent":
        """Convert the row back into an immutable event."""
        from turbine_tracker.services.event_indexer.types import LogEvent

        return LogEvent(
            unique_id=self.unique_id,
            block_number=self.block_number,
            transaction_hash=self.transaction_hash,
            log_index=self.log_index,
            recipient=self.recipient,
            silence_amount=self.silence_amount,
            usdt_amount=self.usdt_amount,
            timestamp=self.timestamp,
        )
