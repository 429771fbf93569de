"""
Sync Engine.

Resumable batch loop that walks the block range of the tracked event,
decodes and deduplicates logs into the event store, and retries after
any failure.

State machine:
- IDLE: nothing scanned in this process yet
- SYNCING: a session is fetching/persisting batches
- PAUSED: stopped by the user; resumable from the checkpoint
- ERROR: a session failed; a retry timer is pending
- COMPLETED: the upper bound was reached; resumable when it advances
"""

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

from loguru import logger

from turbine_tracker.models.enums import SyncStatus
from turbine_tracker.services.blockchain.rpc_client import ChainClient, RpcClient
from turbine_tracker.services.event_indexer.block_range import (
    resolve_end_block,
    resolve_start_block,
)
from turbine_tracker.services.event_indexer.decoder import decode_logs
from turbine_tracker.services.event_indexer.event_store import EventStore
from turbine_tracker.services.event_indexer.timestamp_estimator import (
    TimestampEstimator,
)
from turbine_tracker.services.event_indexer.types import (
    LogEvent,
    SyncConfig,
    SyncProgress,
)
from turbine_tracker.utils.datetime_utils import utc_midnight, utc_now
from turbine_tracker.utils.exceptions import (
    ConfigLockedError,
    DecodeError,
    RpcError,
    StorageError,
)

# Progress log every N batches
PROGRESS_LOG_EVERY = 10

_ERROR_LABELS = {
    DecodeError: "Decode Error",
    RpcError: "RPC Error",
    StorageError: "Storage Error",
}


class EventSink(Protocol):
    """Receiver of persisted events (the aggregation side)."""

    async def on_events_persisted(self, events: list[LogEvent]) -> None: ...

    async def on_reset(self) -> None: ...


class CancellationToken:
    """Cooperative stop flag owned by one sync session."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class SyncEngine:
    """
    Incremental sync of contract logs into the event store.

    One session runs at a time. Each session re-reads the chain head,
    refreshes the timestamp anchor, resumes from the checkpoint (or the
    configured start time) and processes batches until the upper bound,
    a stop request, or an error. Cancellation is observed only between
    batches, so an in-flight fetch always completes or fails first.

    Every error is treated as transient: the engine moves to ERROR and
    schedules one fixed-delay retry that re-runs the whole start
    transition.
    """

    def __init__(
        self,
        store: EventStore,
        client: ChainClient,
        config: SyncConfig | None = None,
        estimator: TimestampEstimator | None = None,
        sink: EventSink | None = None,
        client_factory: Callable[[str], ChainClient] = RpcClient,
    ) -> None:
        """
        Initialize engine.

        Args:
            store: Persistent event store
            client: Chain client used for head, timestamps and logs
            config: Sync options
            estimator: Timestamp estimator shared with the decoder
            sink: Receiver of newly persisted events
            client_factory: Builds a client for a new RPC URL
        """
        self.store = store
        self.client = client
        self.config = config or SyncConfig()
        self.estimator = estimator or TimestampEstimator(
            block_interval_ms=self.config.block_interval_ms
        )
        self.sink = sink
        self._client_factory = client_factory

        self._status = SyncStatus.IDLE
        self._token: CancellationToken | None = None
        self._task: asyncio.Task | None = None
        self._timer: asyncio.TimerHandle | None = None

        self._scanned_block = 0
        self._head_block = 0
        self._head_timestamp = 0
        self._start_block = 0
        self._end_block = 0
        self._error_message: str | None = None
        self._last_updated: datetime | None = None
        self._failures = 0

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def scanned_block(self) -> int:
        return self._scanned_block

    @property
    def is_running(self) -> bool:
        """A session task exists and has not finished."""
        return self._task is not None and not self._task.done()

    @property
    def retry_pending(self) -> bool:
        return self._timer is not None

    def progress(self) -> SyncProgress:
        """Snapshot for status queries."""
        return SyncProgress(
            status=self._status,
            scanned_block=self._scanned_block,
            head_block=self._head_block,
            head_timestamp=self._head_timestamp,
            start_block=self._start_block,
            end_block=self._end_block,
            error_message=self._error_message,
            retry_pending=self.retry_pending,
            last_updated=self._last_updated,
        )

    async def load_checkpoint(self) -> int:
        """
        Initialize the scanned pointer from the store.

        Returns:
            Stored checkpoint (0 when empty)
        """
        checkpoint = await self.store.latest_scanned_block()
        if checkpoint > self._scanned_block:
            self._scanned_block = checkpoint
        return checkpoint

    # ------------------------------------------------------------------
    # Chain info
    # ------------------------------------------------------------------

    async def refresh_chain_info(self) -> bool:
        """
        Read head block and timestamp and re-anchor the estimator.

        Failures are reported through the error message only; the sync
        state is left unchanged.

        Returns:
            True if the refresh succeeded
        """
        try:
            head = await self.client.get_block_number()
            head_ts = await self.client.get_block_timestamp(head)
        except Exception as e:
            self._error_message = f"Chain Info Error: {e}"
            logger.warning(f"[ChainInfo] Could not fetch chain info: {e}")
            return False

        self._apply_head(head, head_ts)
        logger.debug(f"[ChainInfo] Head {head} at {head_ts}")
        return True

    def _apply_head(self, head: int, head_ts: int) -> None:
        self.estimator.update_anchor(head, head_ts)
        self._head_block = head
        self._head_timestamp = head_ts

        interval = self.config.block_interval_ms
        self._start_block = resolve_start_block(
            self._start_time(), head, head_ts, interval
        )
        self._end_block = (
            resolve_end_block(self.config.end_time, head, head_ts, interval)
            if self.config.end_time is not None
            else 0
        )

    def _start_time(self) -> datetime:
        return self.config.start_time or utc_midnight()

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self, is_retry: bool = False) -> bool:
        """
        Begin a sync session.

        A no-op while SYNCING unless this is the engine's own re-entry
        (retry or RPC switch). Cancels any pending timer. Must be called
        from a running event loop.

        Args:
            is_retry: Engine re-entry; keeps the last error message

        Returns:
            True if a session was launched
        """
        if self._status == SyncStatus.SYNCING and not is_retry:
            logger.debug("[Sync] Already syncing, start ignored")
            return False

        self._cancel_timer()
        if self._token is not None:
            self._token.cancel()

        token = CancellationToken()
        self._token = token
        self._status = SyncStatus.SYNCING
        if not is_retry:
            self._error_message = None
            self._failures = 0

        previous = self._task
        self._task = asyncio.create_task(self._run_session(token, previous))
        return True

    def stop(self) -> None:
        """
        Request the running session to stop at the next batch boundary.

        Cancels any pending retry and moves to PAUSED.
        """
        if self._token is not None:
            self._token.cancel()
        self._cancel_timer()
        self._status = SyncStatus.PAUSED
        logger.info(f"[Sync] Paused at block {self._scanned_block}")

    async def wait(self) -> None:
        """Wait for the current session task (not for pending retries)."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def wait_until_settled(self, poll_interval: float = 0.1) -> SyncStatus:
        """
        Wait until no session runs and no timer is pending.

        Returns:
            Final status (COMPLETED, PAUSED, ERROR after the retry
            ceiling, or IDLE)
        """
        while True:
            await self.wait()
            if not self.is_running and self._timer is None:
                return self._status
            await asyncio.sleep(poll_interval)

    async def change_rpc(self, rpc_url: str) -> None:
        """
        Replace the chain client.

        When a session is active, failed or completed, the current loop
        is told to stop, any retry is dropped, and a fresh session is
        scheduled after the settle delay.

        Args:
            rpc_url: New JSON-RPC endpoint
        """
        old_client = self.client
        self.client = self._client_factory(rpc_url)
        self._error_message = None
        logger.info(f"[Sync] RPC endpoint changed to {rpc_url}")

        if self._status in (
            SyncStatus.SYNCING, SyncStatus.ERROR, SyncStatus.COMPLETED
        ):
            self._cancel_timer()
            if self._token is not None:
                self._token.cancel()
            self._schedule(self.config.rpc_switch_delay)

        # The old loop may still be mid-fetch on the previous client
        if self.is_running:
            self._task.add_done_callback(lambda _: old_client.close())
        else:
            old_client.close()

        await self.refresh_chain_info()

    async def update_config(self, **changes: Any) -> SyncConfig:
        """
        Change sync options.

        ``start_time`` is locked once a non-zero checkpoint exists and
        ``batch_size`` is locked while SYNCING.

        Raises:
            ConfigLockedError: A locked option was changed
            AttributeError: Unknown option
        """
        for name in changes:
            if not hasattr(self.config, name):
                raise AttributeError(f"Unknown sync option: {name}")

        if "start_time" in changes and changes["start_time"] != self.config.start_time:
            checkpoint = max(
                self._scanned_block, await self.store.latest_scanned_block()
            )
            if checkpoint > 0:
                raise ConfigLockedError(
                    "Start time is locked once blocks have been scanned; reset first"
                )
        if "batch_size" in changes and self._status == SyncStatus.SYNCING:
            raise ConfigLockedError("Batch size cannot change while syncing")

        for name, value in changes.items():
            setattr(self.config, name, value)

        if self._head_block:
            self._apply_head(self._head_block, self._head_timestamp)
        return self.config

    async def reset(self) -> None:
        """
        Irreversibly clear all events and derived state; back to IDLE.
        """
        self.stop()
        await self.wait()
        await self.store.clear()

        self._scanned_block = 0
        self._start_block = 0
        self._end_block = 0
        self._error_message = None
        self._failures = 0
        self._last_updated = utc_now()
        if self.sink is not None:
            await self.sink.on_reset()

        self._status = SyncStatus.IDLE
        logger.warning("[Sync] Local database reset")
        await self.refresh_chain_info()

    async def close(self) -> None:
        """Stop, wait for the session, and release the client."""
        if self._token is not None:
            self._token.cancel()
        self._cancel_timer()
        await self.wait()
        self.client.close()

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _schedule(self, delay: float) -> None:
        """Schedule engine re-entry; replaces any pending timer."""
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._fire_timer)

    def _fire_timer(self) -> None:
        self._timer = None
        self.start(is_retry=True)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def _run_session(
        self,
        token: CancellationToken,
        previous: asyncio.Task | None,
    ) -> None:
        # Never let two loops touch the store at once
        if previous is not None and not previous.done():
            await asyncio.wait({previous})

        try:
            await self._sync(token)
        except Exception as e:
            self._handle_failure(token, e)

    async def _sync(self, token: CancellationToken) -> None:
        client = self.client

        head = await client.get_block_number()
        head_ts = await client.get_block_timestamp(head)
        self._apply_head(head, head_ts)

        checkpoint = max(
            await self.store.latest_scanned_block(), self._scanned_block
        )
        if checkpoint > 0:
            pointer = checkpoint
        else:
            pointer = self._start_block
        upper = resolve_end_block(
            self.config.end_time, head, head_ts, self.config.block_interval_ms
        )

        if token.cancelled:
            return
        if pointer >= upper:
            self._complete(token, pointer, batches=0)
            return

        batch_size = self.config.effective_batch_size
        total_blocks = upper - pointer
        first_block = pointer
        logger.info(
            f"[Sync] Syncing {total_blocks} blocks "
            f"({pointer + 1} -> {upper}), batch size {batch_size}"
        )

        batches = 0
        while not token.cancelled and pointer < upper:
            to_block = min(pointer + batch_size, upper)

            raw_logs = await client.fetch_logs(pointer + 1, to_block)
            events = decode_logs(raw_logs, self.estimator)
            inserted = await self.store.insert_deduplicated(events)
            if inserted and self.sink is not None:
                await self.sink.on_events_persisted(inserted)

            pointer = to_block
            self._scanned_block = max(self._scanned_block, pointer)
            self._last_updated = utc_now()
            self._failures = 0
            batches += 1

            if batches % PROGRESS_LOG_EVERY == 0:
                progress = (pointer - first_block) / total_blocks * 100
                logger.info(
                    f"[Sync] Progress: {progress:.1f}% (block {pointer})"
                )

            if token.cancelled or pointer >= upper:
                break
            await asyncio.sleep(self.config.batch_delay)

        if not token.cancelled and pointer >= upper:
            self._complete(token, pointer, batches)

    def _complete(self, token: CancellationToken, pointer: int, batches: int) -> None:
        if token.cancelled:
            return
        self._status = SyncStatus.COMPLETED
        self._error_message = None
        self._last_updated = utc_now()
        logger.success(
            f"[Sync] Completed at block {pointer} ({batches} batches)"
        )

    def _handle_failure(self, token: CancellationToken, error: Exception) -> None:
        if token.cancelled:
            logger.warning(f"[Sync] Error after stop ignored: {error}")
            return

        label = next(
            (text for kind, text in _ERROR_LABELS.items() if isinstance(error, kind)),
            "Sync Error",
        )
        self._failures += 1
        self._status = SyncStatus.ERROR

        max_retries = self.config.max_retries
        if max_retries is not None and self._failures >= max_retries:
            self._error_message = (
                f"{label}: {error}. Giving up after {self._failures} attempts"
            )
            logger.error(f"[Sync] {self._error_message}")
            return

        delay = self.config.retry_delay
        self._error_message = f"{label}: {error}. Retrying in {delay:g}s..."
        logger.warning(f"[Sync] {self._error_message}")
        self._schedule(delay)
