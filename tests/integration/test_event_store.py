"""
Integration tests for the persistent event store (SQLite).

Tests cover:
- Deduplicated inserts
- Checkpoint tracking and fallback
- Concurrent writers
- Clearing the store
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from turbine_tracker.models import IndexedEvent
from turbine_tracker.repositories import IndexedEventRepository
from turbine_tracker.services.event_indexer.decoder import decode_logs
from turbine_tracker.services.event_indexer.event_store import EventStore


@pytest.fixture
def make_events(raw_log, estimator):
    """Decoded events for the given blocks."""
    def _make(*blocks: int, log_index: int = 0):
        return decode_logs([raw_log(b, log_index=log_index) for b in blocks], estimator)
    return _make


class TestInsertDeduplicated:
    """Test idempotent inserts."""

    @pytest.mark.asyncio
    async def test_insert_new(self, store, make_events):
        """New events are stored and returned."""
        events = make_events(1001, 1002)

        inserted = await store.insert_deduplicated(events)

        assert inserted == events
        assert await store.count() == 2

    @pytest.mark.asyncio
    async def test_second_insert_is_noop(self, store, make_events):
        """Re-inserting the same events inserts nothing."""
        events = make_events(1001, 1002)
        await store.insert_deduplicated(events)

        inserted = await store.insert_deduplicated(events)

        assert inserted == []
        assert await store.count() == 2

    @pytest.mark.asyncio
    async def test_partial_overlap(self, store, make_events):
        """Only unseen events are returned."""
        await store.insert_deduplicated(make_events(1001, 1002))

        inserted = await store.insert_deduplicated(make_events(1002, 1003))

        assert [e.block_number for e in inserted] == [1003]
        assert await store.count() == 3

    @pytest.mark.asyncio
    async def test_duplicates_within_batch(self, store, make_events):
        """Repeated ids in one batch are stored once."""
        events = make_events(1001)

        inserted = await store.insert_deduplicated(events + events)

        assert inserted == events
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_empty_input_touches_nothing(self):
        """Empty input returns without opening a session."""
        session_maker = MagicMock()
        store = EventStore(session_maker)

        assert await store.insert_deduplicated([]) == []
        session_maker.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_writers(self, store, make_events):
        """Parallel inserts of the same events store each once."""
        events = make_events(*range(1001, 1011))

        results = await asyncio.gather(
            store.insert_deduplicated(events),
            store.insert_deduplicated(events),
            store.insert_deduplicated(events),
        )

        assert sum(len(r) for r in results) == 10
        assert await store.count() == 10


class TestCheckpoint:
    """Test latest scanned block tracking."""

    @pytest.mark.asyncio
    async def test_empty_store(self, store):
        """Empty store reports 0."""
        assert await store.latest_scanned_block() == 0

    @pytest.mark.asyncio
    async def test_max_block(self, store, make_events):
        """Checkpoint is the highest stored block."""
        await store.insert_deduplicated(make_events(1005, 1030, 1010))

        assert await store.latest_scanned_block() == 1030

    @pytest.mark.asyncio
    async def test_never_decreases(self, store, make_events):
        """Inserting older events keeps the checkpoint."""
        await store.insert_deduplicated(make_events(1030))
        await store.insert_deduplicated(make_events(1001))

        assert await store.latest_scanned_block() == 1030

    @pytest.mark.asyncio
    async def test_fallback_without_checkpoint_row(self, store, session_maker, make_events):
        """Rows written without a checkpoint still give the max block."""
        async with session_maker() as session:
            session.add_all(IndexedEvent.from_domain(e) for e in make_events(1007, 1042))
            await session.commit()

        assert await store.latest_scanned_block() == 1042


class TestScanAndClear:
    """Test full reads and reset."""

    @pytest.mark.asyncio
    async def test_scan_all_ordered(self, store, make_events):
        """Scan returns every event in block order."""
        await store.insert_deduplicated(make_events(1003, 1001, 1002))

        events = await store.scan_all()

        assert [e.block_number for e in events] == [1001, 1002, 1003]

    @pytest.mark.asyncio
    async def test_roundtrip_keeps_big_amounts(self, store, raw_log, estimator):
        """Amounts are stored as exact decimal strings."""
        big = 2**255 + 7
        events = decode_logs([raw_log(1001, silence=big)], estimator)
        await store.insert_deduplicated(events)

        stored = await store.scan_all()

        assert stored[0].silence_amount == str(big)
        assert stored == events

    @pytest.mark.asyncio
    async def test_clear(self, store, make_events):
        """Clear removes events and the checkpoint."""
        await store.insert_deduplicated(make_events(1001, 1002))

        await store.clear()

        assert await store.count() == 0
        assert await store.latest_scanned_block() == 0
        assert await store.scan_all() == []


class TestIndexedEventRepository:
    """Test generic repository operations on events."""

    @pytest.mark.asyncio
    async def test_count_with_filters(self, store, session_maker, raw_log, estimator):
        """Count honours column filters."""
        other = "0x" + "cc" * 20
        await store.insert_deduplicated(
            decode_logs([raw_log(1001), raw_log(1002), raw_log(1003, recipient=other)], estimator)
        )

        async with session_maker() as session:
            repo = IndexedEventRepository(session)
            recipient = (await repo.get_all_events())[0].recipient

            assert await repo.count() == 3
            assert await repo.count(recipient=recipient) == 2
            assert await repo.count(block_number=1003) == 1

    @pytest.mark.asyncio
    async def test_delete_all(self, store, session_maker, make_events):
        """delete_all removes every row and reports the count."""
        await store.insert_deduplicated(make_events(1001, 1002))

        async with session_maker() as session:
            assert await IndexedEventRepository(session).delete_all() == 2
            await session.commit()

        assert await store.count() == 0
