"""
Indexed Event repository.

Data access layer for persisted contract events and the sync checkpoint.
"""

from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from turbine_tracker.models.indexed_event import IndexedEvent
from turbine_tracker.models.sync_checkpoint import (
    CHECKPOINT_ROW_ID,
    SyncCheckpoint,
)
from turbine_tracker.repositories.base import BaseRepository
from turbine_tracker.services.event_indexer.types import LogEvent

# Keep IN (...) lists well under SQLite's bound-parameter limit
_ID_CHUNK = 500


class IndexedEventRepository(BaseRepository[IndexedEvent]):
    """Repository for indexed events."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(IndexedEvent, session)

    async def existing_unique_ids(self, unique_ids: Iterable[str]) -> set[str]:
        """
        Return the subset of ``unique_ids`` already stored.

        Args:
            unique_ids: Candidate keys

        Returns:
            Keys that already have a row
        """
        ids = list(unique_ids)
        found: set[str] = set()
        for start in range(0, len(ids), _ID_CHUNK):
            chunk = ids[start:start + _ID_CHUNK]
            result = await self.session.execute(
                select(IndexedEvent.unique_id)
                .where(IndexedEvent.unique_id.in_(chunk))
            )
            found.update(result.scalars().all())
        return found

    async def add_events(self, events: list[LogEvent]) -> None:
        """Stage rows for new events and flush them."""
        self.session.add_all(IndexedEvent.from_domain(ev) for ev in events)
        await self.session.flush()

    async def get_all_events(self) -> list[LogEvent]:
        """
        Get every stored event.

        Returns:
            Events ordered by block number
        """
        result = await self.session.execute(
            select(IndexedEvent).order_by(
                IndexedEvent.block_number.asc(), IndexedEvent.log_index.asc()
            )
        )
        return [row.to_domain() for row in result.scalars().all()]

    async def get_max_block(self) -> int:
        """
        Get the highest stored block number by scanning events.

        Returns:
            Latest block number or 0
        """
        result = await self.session.execute(
            select(func.max(IndexedEvent.block_number))
        )
        block = result.scalar()
        return block if block else 0

    async def get_checkpoint(self) -> SyncCheckpoint | None:
        """Get the checkpoint row, if one was written."""
        return await self.session.get(SyncCheckpoint, CHECKPOINT_ROW_ID)

    async def get_latest_block(self) -> int:
        """
        Get the resumption checkpoint.

        Reads the tracked row; databases written before the row existed
        fall back to a MAX() over events.

        Returns:
            Latest persisted block number or 0
        """
        checkpoint = await self.get_checkpoint()
        if checkpoint is not None:
            return checkpoint.last_scanned_block
        return await self.get_max_block()

    async def advance_checkpoint(self, block_number: int) -> int:
        """
        Raise the checkpoint to ``block_number`` if it is higher.

        Must run in the transaction that inserted the events.

        Args:
            block_number: Highest block among newly inserted events

        Returns:
            Checkpoint after the update
        """
        checkpoint = await self.get_checkpoint()
        if checkpoint is None:
            current = await self.get_max_block()
            checkpoint = SyncCheckpoint(
                id=CHECKPOINT_ROW_ID,
                last_scanned_block=max(current, block_number),
            )
            self.session.add(checkpoint)
        elif block_number > checkpoint.last_scanned_block:
            checkpoint.last_scanned_block = block_number

        await self.session.flush()
        return checkpoint.last_scanned_block

    async def clear(self) -> int:
        """
        Delete every event and the checkpoint row.

        Returns:
            Number of deleted events
        """
        deleted = await self.delete_all()
        checkpoint = await self.get_checkpoint()
        if checkpoint is not None:
            await self.session.delete(checkpoint)
            await self.session.flush()
        return deleted
