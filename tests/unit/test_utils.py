"""Tests for export, masking and datetime helpers."""

import time
from datetime import UTC, datetime, timedelta, timezone

import pytest

from turbine_tracker.models.enums import ViewMode
from turbine_tracker.services.event_indexer.types import AggregatedData
from turbine_tracker.utils.datetime_utils import (
    from_epoch_ms,
    local_midnight_ms,
    to_epoch_ms,
    utc_date_key,
    utc_midnight,
)
from turbine_tracker.utils.export import CSV_HEADER, export_filename, render_csv
from turbine_tracker.utils.security import mask_address


class TestRenderCsv:
    """Test CSV rendering."""

    def test_header_only(self):
        """Empty leaderboard still has the header."""
        assert render_csv([]) == "Recipient,Total LGNS,Total USDT,Transaction Count\n"

    def test_rows_with_four_decimals(self):
        """Amounts are fixed to 4 decimals, rows keep their order."""
        rows = [
            AggregatedData("0xAbC", 1234.5, 0.123456, 3),
            AggregatedData("0xDef", 100.0, 0.0, 1),
        ]

        lines = render_csv(rows).splitlines()

        assert lines[0] == ",".join(CSV_HEADER)
        assert lines[1] == "0xAbC,1234.5000,0.1235,3"
        assert lines[2] == "0xDef,100.0000,0.0000,1"


class TestExportFilename:
    """Test default export file names."""

    def test_utc_stamp(self):
        """Timestamp is rendered in UTC."""
        now = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=3)))

        assert export_filename(ViewMode.TODAY, now) == (
            "turbine-stats-today-2025-01-02T00-04-05Z.csv"
        )


class TestMaskAddress:
    """Test address masking for logs."""

    def test_mask(self):
        """First 6 and last 4 characters are kept."""
        assert mask_address("0x07Ff4e06865de4934409Aa6eCea503b08Cc1C78d") == "0x07Ff...C78d"

    def test_short_or_empty(self):
        """Short and empty values are fully masked."""
        assert mask_address("") == "***"
        assert mask_address(None) == "***"


class TestDatetimeUtils:
    """Test epoch and calendar helpers."""

    def test_epoch_ms_roundtrip(self):
        """Aware datetimes survive ms conversion."""
        value = datetime(2024, 12, 14, 22, 0, tzinfo=UTC)

        assert to_epoch_ms(value) == 1_734_213_600_000
        assert from_epoch_ms(1_734_213_600_000) == value

    def test_utc_date_key(self):
        """Date key is the UTC calendar date."""
        assert utc_date_key(1_734_213_600_000) == "2024-12-14"

    def test_utc_midnight(self):
        """Start of the UTC day."""
        now = datetime(2025, 3, 1, 17, 30, tzinfo=UTC)

        assert utc_midnight(now) == datetime(2025, 3, 1, tzinfo=UTC)

    def test_local_midnight_not_after_now(self):
        """Local midnight is within the last 24 hours."""
        now = datetime(2025, 3, 1, 17, 30, tzinfo=UTC)
        midnight = local_midnight_ms(now)

        assert 0 <= to_epoch_ms(now) - midnight < 86_400_000


@pytest.fixture
def new_york_tz(monkeypatch):
    """Pin the process timezone to a zone with daylight saving time."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class TestLocalMidnightDst:
    """Test local midnight on daylight saving transition days."""

    def test_spring_forward(self, new_york_tz):
        """Midnight keeps the EST offset even when noon is EDT."""
        now = datetime(2025, 3, 9, 16, 0, tzinfo=UTC)

        assert local_midnight_ms(now) == to_epoch_ms(datetime(2025, 3, 9, 5, 0, tzinfo=UTC))

    def test_fall_back(self, new_york_tz):
        """Midnight keeps the EDT offset even when noon is EST."""
        now = datetime(2025, 11, 2, 17, 0, tzinfo=UTC)

        assert local_midnight_ms(now) == to_epoch_ms(datetime(2025, 11, 2, 4, 0, tzinfo=UTC))
