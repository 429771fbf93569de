"""
Export utilities.

CSV rendering of the current leaderboard.
"""

import csv
import io
from collections.abc import Iterable
from datetime import UTC, datetime

from turbine_tracker.models.enums import ViewMode
from turbine_tracker.services.event_indexer.types import AggregatedData
from turbine_tracker.utils.datetime_utils import utc_now

CSV_HEADER = ("Recipient", "Total LGNS", "Total USDT", "Transaction Count")


def render_csv(rows: Iterable[AggregatedData]) -> str:
    """
    Render rows as CSV text.

    Args:
        rows: Leaderboard rows, already filtered and sorted

    Returns:
        Header line plus one line per row, amounts with 4 decimals
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow((
            row.recipient,
            f"{row.total_silence:.4f}",
            f"{row.total_usdt:.4f}",
            row.count,
        ))
    return buffer.getvalue()


def export_filename(view: ViewMode, now: datetime | None = None) -> str:
    """Default export file name, e.g. turbine-stats-all-2025-01-01T00-00-00Z.csv."""
    stamp = (now or utc_now()).astimezone(UTC).strftime("%Y-%m-%dT%H-%M-%SZ")
    return f"turbine-stats-{view.value.lower()}-{stamp}.csv"
