"""
Chain Info Refresh Task.

Keeps the timestamp estimator anchored near the chain head:
1. Refresh once at startup
2. Refresh again every interval (default 4 hours)

The linear block-time model drifts when the real block interval varies,
so a fresh anchor bounds the error of estimated event timestamps.
"""

import asyncio

from loguru import logger

from turbine_tracker.config.constants import CHAIN_INFO_REFRESH_INTERVAL_SECONDS
from turbine_tracker.services.event_indexer.sync_engine import SyncEngine


async def refresh_chain_info(engine: SyncEngine) -> dict:
    """
    Refresh head block, head timestamp and estimator anchor once.

    Returns:
        Dict with refresh results
    """
    success = await engine.refresh_chain_info()
    progress = engine.progress()
    result = {
        "success": success,
        "head_block": progress.head_block,
        "head_timestamp": progress.head_timestamp,
    }
    if not success:
        result["error"] = progress.error_message
    return result


async def run_chain_info_refresh(
    engine: SyncEngine,
    interval: float = CHAIN_INFO_REFRESH_INTERVAL_SECONDS,
) -> None:
    """
    Refresh chain info forever, every ``interval`` seconds.

    Failures are logged and never stop the loop; cancel the task to end it.
    """
    while True:
        try:
            result = await refresh_chain_info(engine)
            if result["success"]:
                logger.info(
                    f"[ChainInfo Task] Anchor at block {result['head_block']}"
                )
        except asyncio.CancelledError:
            logger.info("[ChainInfo Task] Task cancelled")
            raise
        except Exception as e:
            logger.exception(f"[ChainInfo Task] Task failed: {e}")

        await asyncio.sleep(interval)
