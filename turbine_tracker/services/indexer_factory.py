"""
Indexer factory.

Wires settings, database, store, stats and sync engine together.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from turbine_tracker.config.database import (
    create_engine,
    create_session_maker,
    init_database,
)
from turbine_tracker.config.settings import Settings
from turbine_tracker.services.blockchain.rpc_client import RpcClient
from turbine_tracker.services.event_indexer.event_store import EventStore
from turbine_tracker.services.event_indexer.sync_engine import SyncEngine
from turbine_tracker.services.event_indexer.timestamp_estimator import (
    TimestampEstimator,
)
from turbine_tracker.services.event_indexer.types import SyncConfig
from turbine_tracker.services.stats_service import StatsService


@dataclass
class Indexer:
    """Running indexer components."""

    db_engine: AsyncEngine
    store: EventStore
    stats: StatsService
    sync: SyncEngine

    async def close(self) -> None:
        await self.sync.close()
        await self.db_engine.dispose()


def sync_config_from_settings(settings: Settings) -> SyncConfig:
    """Build sync options from application settings."""
    return SyncConfig(
        start_time=settings.sync_start_time,
        end_time=settings.sync_end_time,
        batch_size=settings.sync_batch_size,
        batch_delay=settings.sync_batch_delay,
        retry_delay=settings.sync_retry_delay,
        rpc_switch_delay=settings.rpc_switch_delay,
        block_interval_ms=settings.block_interval_ms,
        max_retries=settings.sync_max_retries,
    )


async def create_indexer(settings: Settings, load: bool = True) -> Indexer:
    """
    Build all components and prepare the database.

    Args:
        settings: Application settings
        load: Load stored events into stats and the checkpoint into the engine

    Returns:
        Wired indexer
    """
    db_engine = create_engine(settings.database_url)
    await init_database(db_engine)
    store = EventStore(create_session_maker(db_engine))

    stats = StatsService(
        store,
        stat_threshold=settings.stat_threshold,
        display_threshold=settings.display_threshold,
        view_mode=settings.view_mode,
    )

    def client_factory(rpc_url: str) -> RpcClient:
        return RpcClient(
            rpc_url,
            contract_address=settings.contract_address,
            topic0=settings.topic0,
            timeout=settings.rpc_timeout,
        )

    sync = SyncEngine(
        store,
        client_factory(settings.rpc_url),
        config=sync_config_from_settings(settings),
        estimator=TimestampEstimator(block_interval_ms=settings.block_interval_ms),
        sink=stats,
        client_factory=client_factory,
    )

    if load:
        await stats.load()
        await sync.load_checkpoint()

    return Indexer(db_engine=db_engine, store=store, stats=stats, sync=sync)
