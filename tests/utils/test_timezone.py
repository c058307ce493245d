"""Tests for utils/timezone.py - UTC-everywhere time handling."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from utils.timezone import (
    VERSION_RESOLUTION,
    next_version,
    now_utc,
    parse_iso,
    to_calendar_date,
    to_local,
    to_utc,
)


class TestNowUtc:
    """Tests for now_utc()."""

    def test_returns_timezone_aware(self):
        """Result must have tzinfo set (not naive)."""
        result = now_utc()
        assert result.tzinfo is not None

    def test_is_utc(self):
        """Result timezone must be specifically UTC."""
        result = now_utc()
        assert result.tzinfo == timezone.utc


class TestToUtc:
    """Tests for to_utc()."""

    def test_raises_on_naive(self):
        """Naive datetime must raise ValueError."""
        naive = datetime(2024, 1, 1, 12, 0, 0)
        with pytest.raises(ValueError, match="naive"):
            to_utc(naive)

    def test_converts_other_timezone(self):
        """Chicago 12:00 in January should become UTC 18:00."""
        # Chicago is UTC-6 in January (no DST)
        chicago = datetime(2024, 1, 1, 12, 0, 0, tzinfo=ZoneInfo("America/Chicago"))
        result = to_utc(chicago)
        assert result.tzinfo == timezone.utc
        assert result.hour == 18

    def test_utc_passes_through(self):
        """UTC datetime should pass through unchanged."""
        utc_time = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        result = to_utc(utc_time)
        assert result.tzinfo == timezone.utc
        assert result.hour == 12


class TestToLocal:
    """Tests for to_local()."""

    def test_converts_correctly(self):
        """UTC 18:00 should become Chicago 12:00 in January."""
        utc_time = datetime(2024, 1, 1, 18, 0, 0, tzinfo=timezone.utc)
        result = to_local(utc_time, "America/Chicago")
        assert result.hour == 12

    def test_raises_on_naive(self):
        """Naive datetime must raise ValueError."""
        naive = datetime(2024, 1, 1, 12, 0, 0)
        with pytest.raises(ValueError, match="naive"):
            to_local(naive, "America/Chicago")

    def test_raises_on_invalid_timezone(self):
        """Invalid timezone name must raise ValueError."""
        utc_time = now_utc()
        with pytest.raises(ValueError, match="Unknown timezone"):
            to_local(utc_time, "Not/A/Timezone")


class TestParseIso:
    """Tests for parse_iso()."""

    def test_handles_zulu(self):
        """ISO string with Z suffix should parse to UTC."""
        result = parse_iso("2024-01-01T12:00:00Z")
        assert result.tzinfo == timezone.utc
        assert result.hour == 12

    def test_handles_offset(self):
        """ISO string with offset should convert to UTC."""
        # -06:00 offset means local time is 6 hours behind UTC
        # So 12:00-06:00 = 18:00 UTC
        result = parse_iso("2024-01-01T12:00:00-06:00")
        assert result.tzinfo == timezone.utc
        assert result.hour == 18

    def test_raises_on_naive(self):
        """ISO string without timezone must raise ValueError."""
        with pytest.raises(ValueError, match="timezone"):
            parse_iso("2024-01-01T12:00:00")

    def test_handles_positive_offset(self):
        """ISO string with positive offset should convert to UTC."""
        # +05:30 offset means local time is 5.5 hours ahead of UTC
        # So 12:00+05:30 = 06:30 UTC
        result = parse_iso("2024-01-01T12:00:00+05:30")
        assert result.tzinfo == timezone.utc
        assert result.hour == 6
        assert result.minute == 30


class TestToCalendarDate:
    """Tests for to_calendar_date()."""

    def test_uses_local_date(self):
        """20:00 UTC is already the next day in Kolkata (+05:30)."""
        utc_time = datetime(2024, 1, 15, 20, 0, 0, tzinfo=timezone.utc)
        assert to_calendar_date(utc_time, "Asia/Kolkata") == "2024-01-16"

    def test_no_time_of_day(self):
        """Output is a bare YYYY-MM-DD date."""
        utc_time = datetime(2024, 3, 5, 8, 30, 0, tzinfo=timezone.utc)
        assert to_calendar_date(utc_time, "UTC") == "2024-03-05"


class TestNextVersion:
    """Tests for next_version()."""

    def test_later_than_previous(self):
        """Next version is strictly after the previous one."""
        previous = now_utc()
        assert next_version(previous) > previous

    def test_previous_in_future(self):
        """A previous version ahead of the clock is bumped by one step."""
        previous = now_utc() + timedelta(minutes=5)
        assert next_version(previous) == previous + VERSION_RESOLUTION

    def test_same_instant(self, monkeypatch):
        """A clock that has not advanced still yields a later version."""
        frozen = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        monkeypatch.setattr("utils.timezone.now_utc", lambda: frozen)
        assert next_version(frozen) == frozen + VERSION_RESOLUTION

    def test_returns_utc(self):
        """Versions are always UTC."""
        previous = datetime(2024, 1, 1, 12, 0, 0, tzinfo=ZoneInfo("Asia/Kolkata"))
        assert next_version(previous).tzinfo == timezone.utc
