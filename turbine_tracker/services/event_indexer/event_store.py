"""
Persistent Event Store.

Durable, deduplicated collection of LogEvents with a tracked
"latest scanned block" checkpoint.
"""

import asyncio

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from turbine_tracker.repositories.indexed_event_repository import (
    IndexedEventRepository,
)
from turbine_tracker.services.event_indexer.types import LogEvent
from turbine_tracker.utils.exceptions import StorageError


class EventStore:
    """
    Event store over an async SQLAlchemy session factory.

    Each operation runs in its own session and transaction. Writers are
    serialized by a lock so the existence check and the insert of
    ``insert_deduplicated`` form one unit; the unique index on
    ``unique_id`` backs this up at the database level.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize store.

        Args:
            session_maker: Factory for database sessions
        """
        self._session_maker = session_maker
        self._write_lock = asyncio.Lock()

    async def insert_deduplicated(self, events: list[LogEvent]) -> list[LogEvent]:
        """
        Insert events whose ``unique_id`` is not stored yet.

        Duplicates inside ``events`` itself are collapsed to the first
        occurrence.

        Args:
            events: Candidate events

        Returns:
            Exactly the events that were newly inserted

        Raises:
            StorageError: The transaction failed; nothing was committed
        """
        if not events:
            return []

        candidates: dict[str, LogEvent] = {}
        for event in events:
            candidates.setdefault(event.unique_id, event)

        async with self._write_lock:
            async with self._session_maker() as session:
                repo = IndexedEventRepository(session)
                try:
                    existing = await repo.existing_unique_ids(candidates)
                    new_events = [
                        ev for uid, ev in candidates.items()
                        if uid not in existing
                    ]
                    if new_events:
                        await repo.add_events(new_events)
                        await repo.advance_checkpoint(
                            max(ev.block_number for ev in new_events)
                        )
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.error(f"[Store] Insert failed: {e}")
                    raise StorageError(f"Failed to persist events: {e}") from e

        if len(new_events) < len(events):
            logger.debug(
                f"[Store] {len(events) - len(new_events)} duplicate events skipped"
            )
        return new_events

    async def scan_all(self) -> list[LogEvent]:
        """
        Return every stored event.

        Raises:
            StorageError: The read failed
        """
        try:
            async with self._session_maker() as session:
                return await IndexedEventRepository(session).get_all_events()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read events: {e}") from e

    async def latest_scanned_block(self) -> int:
        """
        Highest block number among stored events, or 0 when empty.

        Raises:
            StorageError: The read failed
        """
        try:
            async with self._session_maker() as session:
                return await IndexedEventRepository(session).get_latest_block()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read checkpoint: {e}") from e

    async def count(self) -> int:
        """Number of stored events."""
        try:
            async with self._session_maker() as session:
                return await IndexedEventRepository(session).count()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to count events: {e}") from e

    async def clear(self) -> None:
        """
        Remove all events and the checkpoint. Irreversible.

        Raises:
            StorageError: The delete failed
        """
        async with self._write_lock:
            async with self._session_maker() as session:
                try:
                    deleted = await IndexedEventRepository(session).clear()
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    raise StorageError(f"Failed to clear store: {e}") from e

        logger.warning(f"[Store] Cleared {deleted} events")
