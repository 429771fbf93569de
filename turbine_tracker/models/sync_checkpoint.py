"""
Sync Checkpoint model.

Tracks the highest block number among persisted events so resuming a
sync does not need a full table scan.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from turbine_tracker.models.base import Base

CHECKPOINT_ROW_ID = 1


class SyncCheckpoint(Base):
    """
    Single-row checkpoint.

    Advanced in the same transaction as event inserts and always equal to
    MAX(indexed_events.block_number). Removed by a full reset.
    """

    __tablename__ = "sync_checkpoint"

    id: Mapped[int] = mapped_column(primary_key=True)
    last_scanned_block: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )
