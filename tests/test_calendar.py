"""Tests for date-key normalization and timezone helpers."""
import logging
from datetime import date, datetime, time, timedelta, timezone

import pytest

from tour_engine import InvalidDateKeyError, ValidationError
from tour_engine.utils.calendar import (
    add_days_to_date_key,
    date_key_in_timezone,
    date_key_range,
    day_of_week,
    is_date_key,
    is_valid_timezone,
    normalize_date_key,
    normalize_time,
    parse_date_key,
    resolve_timezone,
    today_key,
)


class TestNormalizeDateKey:
    """Tests for normalize_date_key."""

    def test_date_key_string_unchanged(self):
        assert normalize_date_key("2026-03-10") == "2026-03-10"

    def test_iso_string_keeps_date_part_without_conversion(self):
        assert normalize_date_key("2026-03-10T23:30:00-05:00") == "2026-03-10"
        assert normalize_date_key("2026-03-10T00:00:00.000Z") == "2026-03-10"

    def test_date_object(self):
        assert normalize_date_key(date(2026, 3, 10)) == "2026-03-10"

    def test_utc_midnight_uses_utc_date(self):
        """A DATE column re-hydrated as UTC midnight keeps its calendar date."""
        assert normalize_date_key(datetime(2026, 3, 10, tzinfo=timezone.utc)) == "2026-03-10"

    def test_utc_midnight_seen_from_another_offset(self):
        eastern = timezone(timedelta(hours=-4))
        value = datetime(2026, 3, 9, 20, 0, tzinfo=eastern)
        assert normalize_date_key(value) == "2026-03-10"

    def test_aware_wall_clock_uses_local_date(self):
        eastern = timezone(timedelta(hours=-5))
        assert normalize_date_key(datetime(2026, 3, 10, 22, 0, tzinfo=eastern)) == "2026-03-10"

    def test_naive_datetime_is_wall_clock(self):
        assert normalize_date_key(datetime(2026, 3, 10, 23, 59)) == "2026-03-10"

    def test_epoch_at_utc_midnight(self):
        stamp = datetime(2026, 3, 10, tzinfo=timezone.utc).timestamp()
        assert normalize_date_key(stamp) == "2026-03-10"

    @pytest.mark.parametrize("bad", ["2026-3-10", "2026-02-30", "", "garbage", "10/03/2026", None, True])
    def test_rejects_malformed_values(self, bad):
        with pytest.raises(InvalidDateKeyError) as exc:
            normalize_date_key(bad)
        assert isinstance(exc.value, ValidationError)
        assert exc.value.field == "date"

    @pytest.mark.parametrize("value", [
        "2026-03-10",
        "2026-03-10T08:00:00Z",
        date(2024, 2, 29),
        datetime(2026, 1, 1, tzinfo=timezone.utc),
        datetime(2026, 7, 4, 18, 30),
    ])
    def test_idempotent(self, value):
        once = normalize_date_key(value)
        assert normalize_date_key(once) == once


class TestDateKeyArithmetic:
    """Tests for adding days, day of week and ranges."""

    def test_zero_days_is_identity(self):
        assert add_days_to_date_key("2026-03-08", 0) == "2026-03-08"

    @pytest.mark.parametrize("n", [-1000, -366, -1, 1, 29, 365, 1000])
    def test_add_then_subtract_returns_original(self, n):
        key = "2026-03-08"
        assert add_days_to_date_key(add_days_to_date_key(key, n), -n) == key

    def test_crosses_month_year_and_leap_day(self):
        assert add_days_to_date_key("2024-02-28", 1) == "2024-02-29"
        assert add_days_to_date_key("2025-12-31", 1) == "2026-01-01"
        assert add_days_to_date_key("2026-03-01", -1) == "2026-02-28"

    def test_rejects_malformed_key(self):
        with pytest.raises(InvalidDateKeyError):
            add_days_to_date_key("2026-3-8", 1)

    @pytest.mark.parametrize("n", [10**7, -10**7, 10**12])
    def test_out_of_calendar_shift(self, n):
        with pytest.raises(ValidationError) as exc:
            add_days_to_date_key("2026-01-01", n)
        assert exc.value.field == "days"

    def test_day_of_week_is_sunday_based(self):
        assert day_of_week("2026-01-01") == 4  # Thursday
        assert day_of_week("2026-01-04") == 0  # Sunday
        assert day_of_week("2026-01-10") == 6  # Saturday

    def test_range_is_inclusive(self):
        assert list(date_key_range("2026-01-30", "2026-02-02")) == [
            "2026-01-30",
            "2026-01-31",
            "2026-02-01",
            "2026-02-02",
        ]

    def test_single_day_range(self):
        assert list(date_key_range("2026-01-30", "2026-01-30")) == ["2026-01-30"]

    def test_reversed_range_is_validation_error(self):
        with pytest.raises(ValidationError) as exc:
            list(date_key_range("2026-02-02", "2026-01-30"))
        assert exc.value.field == "date_range"

    def test_parse_and_check(self):
        assert parse_date_key("2026-01-31") == date(2026, 1, 31)
        assert is_date_key("2026-01-31")
        assert not is_date_key("2026-01-32")
        assert not is_date_key(20260131)


class TestNormalizeTime:
    """Tests for departure time normalization."""

    @pytest.mark.parametrize("value,expected", [
        ("09:00", "09:00"),
        ("9:00", "09:00"),
        ("09:00:00", "09:00"),
        (" 17:45 ", "17:45"),
        (time(14, 5), "14:05"),
    ])
    def test_canonical_form(self, value, expected):
        assert normalize_time(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "9am", "12:60", "", None])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValidationError):
            normalize_time(value)


class TestTimezones:
    """Tests for timezone resolution and zone-aware date keys."""

    def test_known_iana_zone(self, cache):
        assert is_valid_timezone("Asia/Dubai", cache=cache)
        assert not is_valid_timezone("Mars/Olympus", cache=cache)

    def test_fixed_offset_identifiers(self, cache):
        assert is_valid_timezone("UTC+03:00", cache=cache)
        late = datetime(2026, 1, 1, 22, 0, tzinfo=timezone.utc)
        assert date_key_in_timezone(late, "UTC+03:00", cache=cache) == "2026-01-02"
        early = datetime(2026, 1, 1, 3, 0, tzinfo=timezone.utc)
        assert date_key_in_timezone(early, "UTC-05:30", cache=cache) == "2025-12-31"

    def test_unknown_zone_falls_back_with_warning(self, cache, caplog):
        with caplog.at_level(logging.WARNING, logger="tour_engine.utils.calendar"):
            tz = resolve_timezone("Mars/Olympus", default="UTC", cache=cache)
        assert tz.utcoffset(datetime(2026, 1, 1)) == timedelta(0)
        assert "Mars/Olympus" in caplog.text

    def test_date_in_zone_uses_wall_clock(self, cache):
        instant = datetime(2026, 1, 1, 22, 0, tzinfo=timezone.utc)
        assert date_key_in_timezone(instant, "Asia/Dubai", cache=cache) == "2026-01-02"
        assert date_key_in_timezone(instant, "UTC", cache=cache) == "2026-01-01"

    def test_naive_instant_is_utc(self, cache):
        assert date_key_in_timezone(datetime(2026, 1, 1, 22, 0), "Asia/Dubai", cache=cache) == "2026-01-02"

    def test_today_key_in_organization_zone(self, cache):
        now = datetime(2026, 1, 1, 3, 0, tzinfo=timezone.utc)
        assert today_key("America/New_York", now=now, cache=cache) == "2025-12-31"

    def test_today_key_across_dst_change(self, cache):
        # 2026-03-08 is the US spring-forward date
        now = datetime(2026, 3, 9, 3, 30, tzinfo=timezone.utc)
        assert today_key("America/New_York", now=now, cache=cache) == "2026-03-08"

    def test_cache_memoizes_lookups(self, cache):
        is_valid_timezone("Europe/Paris", cache=cache)
        size = len(cache)
        is_valid_timezone("Europe/Paris", cache=cache)
        assert len(cache) == size
