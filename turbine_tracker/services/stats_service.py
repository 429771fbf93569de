"""
Stats Service.

Holds the in-memory event set and the latest aggregation result, and
answers the display-side questions: leaderboard, active wallet count,
volumes, daily chart and CSV export.
"""

from collections.abc import Callable
from datetime import datetime

from loguru import logger

from turbine_tracker.config.constants import (
    DEFAULT_DISPLAY_THRESHOLD,
    DEFAULT_STAT_THRESHOLD,
    LGNS_DECIMALS,
    USDT_DECIMALS,
)
from turbine_tracker.models.enums import ViewMode
from turbine_tracker.services.event_indexer.aggregation import (
    aggregate_events,
    count_active_wallets,
    leaderboard,
    select_view,
    total_volume,
)
from turbine_tracker.services.event_indexer.event_store import EventStore
from turbine_tracker.services.event_indexer.types import (
    AggregatedData,
    AggregationResult,
    DailyData,
    LogEvent,
)
from turbine_tracker.utils.datetime_utils import utc_now
from turbine_tracker.utils.export import render_csv


class StatsService:
    """
    Aggregation holder fed by the sync engine.

    Every change to the event set, thresholds or view triggers a full
    recompute over all known events.
    """

    def __init__(
        self,
        store: EventStore,
        stat_threshold: float = DEFAULT_STAT_THRESHOLD,
        display_threshold: float = DEFAULT_DISPLAY_THRESHOLD,
        view_mode: ViewMode = ViewMode.ALL,
        silence_decimals: int = LGNS_DECIMALS,
        usdt_decimals: int = USDT_DECIMALS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize service.

        Args:
            store: Event store used for the initial load
            stat_threshold: Minimum silence total counted as active wallet
            display_threshold: Minimum silence total shown on the leaderboard
            view_mode: ALL or TODAY
            silence_decimals: Decimals of the silence amount
            usdt_decimals: Decimals of the USDT amount
            clock: Source of "now" for the today view
        """
        self.store = store
        self.stat_threshold = stat_threshold
        self.display_threshold = display_threshold
        self.view_mode = view_mode
        self.silence_decimals = silence_decimals
        self.usdt_decimals = usdt_decimals
        self._clock = clock

        self._events: list[LogEvent] = []
        self._result = AggregationResult()
        self.last_updated: datetime | None = None

    @property
    def events(self) -> list[LogEvent]:
        return list(self._events)

    @property
    def result(self) -> AggregationResult:
        return self._result

    async def load(self) -> int:
        """
        Load every stored event and recompute.

        Returns:
            Number of events loaded
        """
        self._events = await self.store.scan_all()
        self.recompute()
        logger.info(f"[Stats] Loaded {len(self._events)} events from store")
        return len(self._events)

    async def on_events_persisted(self, events: list[LogEvent]) -> None:
        """
        Append newly persisted events and recompute.

        The events are already committed and will not be reported again,
        so a failed recompute falls back to a full reload from the store.
        """
        if not events:
            return
        self._events.extend(events)
        try:
            self.recompute()
        except Exception as e:
            logger.warning(f"[Stats] Recompute failed, reloading from store: {e}")
            await self.load()

    async def on_reset(self) -> None:
        """Forget all events and aggregates."""
        self._events = []
        self._result = AggregationResult()
        self.last_updated = self._clock()

    def recompute(self) -> AggregationResult:
        """Rebuild all aggregates from the full event set."""
        self._result = aggregate_events(
            self._events,
            now=self._clock(),
            silence_decimals=self.silence_decimals,
            usdt_decimals=self.usdt_decimals,
        )
        self.last_updated = self._clock()
        return self._result

    def set_thresholds(
        self,
        stat_threshold: float | None = None,
        display_threshold: float | None = None,
    ) -> None:
        """Change thresholds and recompute."""
        if stat_threshold is not None:
            self.stat_threshold = stat_threshold
        if display_threshold is not None:
            self.display_threshold = display_threshold
        self.recompute()

    def set_view(self, view_mode: ViewMode) -> None:
        """Switch between all-time and today, and recompute."""
        self.view_mode = ViewMode(view_mode)
        self.recompute()

    def view_rows(self) -> list[AggregatedData]:
        """Unfiltered rows of the selected view."""
        return select_view(self._result, self.view_mode)

    def leaderboard(self) -> list[AggregatedData]:
        """Selected view filtered by the display threshold, sorted."""
        return leaderboard(self.view_rows(), self.display_threshold)

    def active_wallets_count(self) -> int:
        """Recipients in the selected view at or above the stat threshold."""
        return count_active_wallets(self.view_rows(), self.stat_threshold)

    def volumes(self) -> tuple[float, float]:
        """(silence, usdt) totals of the selected view."""
        return total_volume(
            self.view_rows(), self.silence_decimals, self.usdt_decimals
        )

    def daily_chart(self) -> list[DailyData]:
        """Daily silence totals, oldest first."""
        return self._result.daily

    def export_csv(self) -> str:
        """Current leaderboard as CSV text."""
        return render_csv(self.leaderboard())
