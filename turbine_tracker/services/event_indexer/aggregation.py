"""
Aggregation Engine.

Pure recompute of per-recipient and per-day statistics from the full
event set. Amounts are summed as Python ints and converted to float only
when building the output rows.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from turbine_tracker.config.constants import LGNS_DECIMALS, USDT_DECIMALS
from turbine_tracker.models.enums import ViewMode
from turbine_tracker.services.event_indexer.types import (
    AggregatedData,
    AggregationResult,
    DailyData,
    LogEvent,
)
from turbine_tracker.utils.datetime_utils import local_midnight_ms, utc_date_key


def format_units(raw: int, decimals: int) -> float:
    """
    Convert a raw integer amount to a display float.

    Args:
        raw: Amount in the token's smallest unit
        decimals: Token decimals

    Returns:
        raw / 10**decimals as float
    """
    return float(Decimal(raw).scaleb(-decimals))


class _Rollup:
    __slots__ = ("silence", "usdt", "count")

    def __init__(self) -> None:
        self.silence = 0
        self.usdt = 0
        self.count = 0

    def add(self, event: LogEvent) -> None:
        self.silence += event.silence_raw
        self.usdt += event.usdt_raw
        self.count += 1


def _to_rows(
    rollups: dict[str, _Rollup],
    silence_decimals: int,
    usdt_decimals: int,
) -> list[AggregatedData]:
    return [
        AggregatedData(
            recipient=recipient,
            total_silence=format_units(r.silence, silence_decimals),
            total_usdt=format_units(r.usdt, usdt_decimals),
            count=r.count,
            silence_raw=r.silence,
            usdt_raw=r.usdt,
        )
        for recipient, r in rollups.items()
    ]


def aggregate_events(
    events: Iterable[LogEvent],
    now: datetime | None = None,
    silence_decimals: int = LGNS_DECIMALS,
    usdt_decimals: int = USDT_DECIMALS,
) -> AggregationResult:
    """
    Recompute all statistics.

    "Today" starts at local midnight of ``now``; daily chart buckets are
    UTC dates. Both derive from the estimated event timestamp.

    Args:
        events: Full event set, in any order
        now: Reference time for the "today" view (default: current time)
        silence_decimals: Decimals of the silence amount
        usdt_decimals: Decimals of the USDT amount

    Returns:
        All-time rollup, today rollup and daily totals sorted by date
    """
    today_start = local_midnight_ms(now)

    all_time: dict[str, _Rollup] = {}
    today: dict[str, _Rollup] = {}
    daily: dict[str, int] = {}

    for event in events:
        all_time.setdefault(event.recipient, _Rollup()).add(event)

        date_key = utc_date_key(event.timestamp)
        daily[date_key] = daily.get(date_key, 0) + event.silence_raw

        if event.timestamp >= today_start:
            today.setdefault(event.recipient, _Rollup()).add(event)

    return AggregationResult(
        all_time=_to_rows(all_time, silence_decimals, usdt_decimals),
        today=_to_rows(today, silence_decimals, usdt_decimals),
        daily=[
            DailyData(date=date, total=format_units(total, silence_decimals))
            for date, total in sorted(daily.items())
        ],
    )


def select_view(result: AggregationResult, view: ViewMode) -> list[AggregatedData]:
    """Rows of the selected view."""
    return result.all_time if view == ViewMode.ALL else result.today


def leaderboard(
    rows: Iterable[AggregatedData], display_threshold: float
) -> list[AggregatedData]:
    """Rows at or above the display threshold, largest silence total first."""
    return sorted(
        (row for row in rows if row.total_silence >= display_threshold),
        key=lambda row: row.total_silence,
        reverse=True,
    )


def count_active_wallets(
    rows: Iterable[AggregatedData], stat_threshold: float
) -> int:
    """Number of recipients at or above the stat threshold."""
    return sum(1 for row in rows if row.total_silence >= stat_threshold)


def total_volume(
    rows: Iterable[AggregatedData],
    silence_decimals: int = LGNS_DECIMALS,
    usdt_decimals: int = USDT_DECIMALS,
) -> tuple[float, float]:
    """
    Total silence and USDT volume of the rows.

    Returns:
        (silence, usdt) display floats
    """
    silence = 0
    usdt = 0
    for row in rows:
        silence += row.silence_raw
        usdt += row.usdt_raw
    return (
        format_units(silence, silence_decimals),
        format_units(usdt, usdt_decimals),
    )
