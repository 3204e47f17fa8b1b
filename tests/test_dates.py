"""
Tests for calendar arithmetic helpers
"""

import time
import pytest
from datetime import date, datetime, timezone

from lending_book.dates import (
    PeriodUnit, add_months, add_period, completed_months, is_period_boundary,
    month_difference, periods_elapsed, to_date,
)


@pytest.fixture
def india_time(monkeypatch):
    """Run with the process local time set to UTC+05:30"""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "IST-05:30")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class TestToDate:
    """Test date normalization"""

    def test_plain_iso_date(self):
        """Test parsing a bare ISO date"""
        assert to_date("2024-01-15") == date(2024, 1, 15)

    def test_timestamp_with_z_suffix(self, india_time):
        """Test a UTC timestamp lands on the local calendar date"""
        assert to_date("2024-01-14T18:30:00.000Z") == date(2024, 1, 15)
        assert to_date("2024-01-14T18:29:59Z") == date(2024, 1, 14)

    def test_aware_datetime_uses_local_date(self, india_time):
        """Test aware datetimes are converted before truncation"""
        assert to_date(datetime(2024, 1, 15, 18, 45, tzinfo=timezone.utc)) == date(2024, 1, 16)
        assert to_date("2024-01-15T23:30:00+05:30") == date(2024, 1, 15)

    def test_naive_datetime_drops_time_of_day(self):
        """Test naive datetimes are truncated to their date"""
        assert to_date(datetime(2024, 1, 15, 23, 59)) == date(2024, 1, 15)
        assert to_date("2024-01-15T23:59:00") == date(2024, 1, 15)

    def test_date_passes_through(self):
        """Test date objects are returned unchanged"""
        d = date(2024, 2, 29)
        assert to_date(d) is d

    def test_malformed_string_fails_fast(self):
        """Test malformed dates raise instead of defaulting to an epoch"""
        with pytest.raises(ValueError, match="Invalid date"):
            to_date("2024-02-30")
        with pytest.raises(ValueError, match="Invalid date"):
            to_date("not a date")

    def test_empty_string(self):
        """Test empty input is rejected"""
        with pytest.raises(ValueError, match="Empty date string"):
            to_date("   ")

    def test_unsupported_type(self):
        """Test non-date values are rejected"""
        with pytest.raises(ValueError, match="Unsupported date value"):
            to_date(20240115)


class TestMonthArithmetic:
    """Test month stepping with end-of-month clamping"""

    def test_clamps_to_leap_february(self):
        """Test Jan 31 + 1 month lands on Feb 29 in a leap year"""
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_clamps_to_february(self):
        """Test Jan 31 + 1 month lands on Feb 28 in a common year"""
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)

    def test_anchor_day_restored(self):
        """Test stepping from the anchor returns to the 31st when the month has one"""
        assert add_months(date(2024, 1, 31), 2) == date(2024, 3, 31)

    def test_year_rollover(self):
        """Test stepping across a year boundary"""
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)

    def test_month_difference_ignores_days(self):
        """Test month difference only looks at year and month"""
        assert month_difference(date(2024, 3, 1), date(2023, 12, 31)) == 3
        assert month_difference(date(2024, 1, 31), date(2024, 1, 1)) == 0

    def test_completed_months_waits_for_day_of_month(self):
        """Test a month completes only once the start day recurs"""
        start = date(2024, 1, 15)
        assert completed_months(start, date(2024, 4, 14)) == 2
        assert completed_months(start, date(2024, 4, 15)) == 3
        assert completed_months(start, date(2024, 4, 20)) == 3

    def test_completed_months_never_negative(self):
        """Test dates before the start count zero months"""
        assert completed_months(date(2024, 1, 15), date(2023, 12, 1)) == 0


class TestPeriods:
    """Test period stepping and boundary detection"""

    def test_add_period_units(self):
        """Test each period unit steps correctly"""
        start = date(2024, 1, 31)
        assert add_period(start, PeriodUnit.DAYS, 3) == date(2024, 2, 3)
        assert add_period(start, PeriodUnit.WEEKS, 2) == date(2024, 2, 14)
        assert add_period(start, PeriodUnit.MONTHS, 1) == date(2024, 2, 29)

    def test_periods_elapsed_monthly_clamped(self):
        """Test the clamped boundary counts on its own day"""
        start = date(2024, 1, 31)
        assert periods_elapsed(start, date(2024, 2, 28), PeriodUnit.MONTHS) == 0
        assert periods_elapsed(start, date(2024, 2, 29), PeriodUnit.MONTHS) == 1
        assert periods_elapsed(start, date(2024, 3, 30), PeriodUnit.MONTHS) == 1
        assert periods_elapsed(start, date(2024, 3, 31), PeriodUnit.MONTHS) == 2

    def test_periods_elapsed_weeks_and_days(self):
        """Test day and week counts"""
        start = date(2024, 1, 1)
        assert periods_elapsed(start, date(2024, 1, 15), PeriodUnit.WEEKS) == 2
        assert periods_elapsed(start, date(2024, 1, 14), PeriodUnit.WEEKS) == 1
        assert periods_elapsed(start, date(2024, 1, 15), PeriodUnit.DAYS) == 14

    def test_periods_elapsed_before_start(self):
        """Test no periods elapse on or before the start date"""
        start = date(2024, 1, 1)
        assert periods_elapsed(start, start, PeriodUnit.DAYS) == 0
        assert periods_elapsed(start, date(2023, 6, 1), PeriodUnit.MONTHS) == 0

    def test_periods_elapsed_matches_iteration(self):
        """Test the closed form agrees with stepping one period at a time"""
        start = date(2024, 1, 31)
        for unit in PeriodUnit:
            as_of = date(2024, 9, 30)
            count = 0
            while add_period(start, unit, count + 1) <= as_of:
                count += 1
            assert periods_elapsed(start, as_of, unit) == count

    def test_is_period_boundary(self):
        """Test boundaries are whole periods after the start"""
        start = date(2024, 1, 1)
        assert is_period_boundary(start, date(2024, 1, 15), PeriodUnit.WEEKS)
        assert not is_period_boundary(start, date(2024, 1, 14), PeriodUnit.WEEKS)
        assert not is_period_boundary(start, start, PeriodUnit.WEEKS)
