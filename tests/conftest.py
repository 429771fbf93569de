"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment so settings load without a .env file
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RPC_URL", "http://localhost:8545")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio

from turbine_tracker.config.constants import TOPIC_0
from turbine_tracker.config.database import (
    create_engine,
    create_session_maker,
    init_database,
)
from turbine_tracker.services.event_indexer.event_store import EventStore
from turbine_tracker.services.event_indexer.timestamp_estimator import (
    TimestampEstimator,
)

# Head used by the fake chain: block 1050 at a whole-second timestamp
HEAD_BLOCK = 1050
HEAD_TIMESTAMP_MS = 1_736_000_000_000
BLOCK_INTERVAL_MS = 2000

RECIPIENT_A = "0x" + "aa" * 20
RECIPIENT_B = "0x" + "bb" * 20


def build_raw_log(
    block: int,
    log_index: int = 0,
    recipient: str = RECIPIENT_A,
    silence: int = 10**9,
    usdt: int = 10**6,
    tx_hash: str | None = None,
    topic_count: int = 4,
) -> dict:
    """Raw eth_getLogs entry of the tracked event."""
    topics = [
        TOPIC_0,
        "0x" + "0" * 24 + recipient[2:].lower(),
        f"0x{silence:064x}",
        f"0x{usdt:064x}",
    ]
    return {
        "address": "0x07ff4e06865de4934409aa6ecea503b08cc1c78d",
        "blockNumber": block,
        "logIndex": log_index,
        "transactionHash": tx_hash or f"0x{block:064x}",
        "topics": topics[:topic_count],
        "data": "0x",
    }


class FakeChainClient:
    """In-memory chain client; records every log request."""

    def __init__(
        self,
        head: int = HEAD_BLOCK,
        head_timestamp_ms: int = HEAD_TIMESTAMP_MS,
        logs: list[dict] | None = None,
    ) -> None:
        self.head = head
        self.head_timestamp_ms = head_timestamp_ms
        self.logs = list(logs or [])
        self.fetch_calls: list[tuple[int, int]] = []
        self.head_calls = 0
        self.fetch_error: Exception | None = None
        self.fetch_failures_left: int | None = None  # None: fail forever
        self.head_error: Exception | None = None
        self.closed = False

    async def get_block_number(self) -> int:
        self.head_calls += 1
        if self.head_error is not None:
            raise self.head_error
        return self.head

    async def get_block_timestamp(self, block_number: int | None = None) -> int:
        return self.head_timestamp_ms

    async def fetch_logs(self, from_block: int, to_block: int) -> list[dict]:
        self.fetch_calls.append((from_block, to_block))
        if self.fetch_error is not None:
            if self.fetch_failures_left is None:
                raise self.fetch_error
            if self.fetch_failures_left > 0:
                self.fetch_failures_left -= 1
                raise self.fetch_error
        return [
            log for log in self.logs
            if from_block <= log["blockNumber"] <= to_block
        ]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def raw_log():
    """Factory for raw log entries."""
    return build_raw_log


@pytest.fixture
def estimator():
    """Estimator anchored at the fake chain head."""
    return TimestampEstimator(
        anchor_block=HEAD_BLOCK,
        anchor_timestamp_ms=HEAD_TIMESTAMP_MS,
        block_interval_ms=BLOCK_INTERVAL_MS,
    )


@pytest.fixture
def chain():
    """Fake chain at HEAD_BLOCK with no logs."""
    return FakeChainClient()


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """Session factory over a fresh SQLite file."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    await init_database(engine)
    yield create_session_maker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def store(session_maker):
    """Empty event store."""
    return EventStore(session_maker)


@pytest.fixture
def chain_factory():
    """Factory for additional fake chains (e.g. after an RPC switch)."""
    return FakeChainClient
