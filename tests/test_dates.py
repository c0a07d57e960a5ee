"""Tests for day keys and calendar arithmetic."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from focus_rank.dates import (
    Clock,
    add_days,
    day_key,
    days_apart,
    month_key,
    parse_day,
    week_start,
    year_of,
)

UTC = timezone.utc
NEW_YORK = ZoneInfo("America/New_York")


def _ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


class TestDayKey:
    def test_utc_noon(self):
        assert day_key(_ms(datetime(2026, 3, 10, 12, tzinfo=UTC)), UTC) == "2026-03-10"

    def test_local_zone_shifts_day(self):
        # 02:00 UTC is still the previous evening in New York
        ts = _ms(datetime(2026, 3, 10, 2, tzinfo=UTC))
        assert day_key(ts, UTC) == "2026-03-10"
        assert day_key(ts, NEW_YORK) == "2026-03-09"

    def test_parse_day_round_trips_to_same_key(self):
        start = parse_day("2026-03-10", NEW_YORK)
        assert day_key(start, NEW_YORK) == "2026-03-10"
        assert day_key(start - 1, NEW_YORK) == "2026-03-09"


class TestDayArithmetic:
    def test_days_apart_signed(self):
        assert days_apart("2026-03-01", "2026-03-10") == 9
        assert days_apart("2026-03-10", "2026-03-01") == -9

    def test_across_month_and_year(self):
        assert days_apart("2025-12-31", "2026-01-01") == 1
        assert add_days("2026-02-28", 1) == "2026-03-01"
        assert add_days("2024-02-28", 1) == "2024-02-29"

    def test_dst_spring_forward_day_is_one_day(self):
        # 2024-03-10 in New York is only 23 hours long
        late = _ms(datetime(2024, 3, 10, 23, 30, tzinfo=NEW_YORK))
        early = _ms(datetime(2024, 3, 11, 0, 30, tzinfo=NEW_YORK))
        assert days_apart(day_key(late, NEW_YORK), day_key(early, NEW_YORK)) == 1

    def test_dst_fall_back_day_is_one_day(self):
        before = _ms(datetime(2024, 11, 3, 0, 15, tzinfo=NEW_YORK))
        after = _ms(datetime(2024, 11, 3, 23, 45, tzinfo=NEW_YORK))
        assert day_key(before, NEW_YORK) == day_key(after, NEW_YORK)


class TestWeekAndMonth:
    def test_week_starts_monday(self):
        assert week_start("2026-03-10") == "2026-03-09"
        assert week_start("2026-03-09") == "2026-03-09"

    def test_sunday_belongs_to_previous_monday(self):
        assert week_start("2026-03-15") == "2026-03-09"

    def test_week_spanning_new_year(self):
        assert week_start("2026-01-01") == "2025-12-29"

    def test_month_and_year(self):
        assert month_key("2026-03-10") == "2026-03"
        assert year_of("2026-03-10") == 2026


class TestClock:
    def test_at_day_is_midday(self):
        clock = Clock.at_day("2026-03-10", UTC)
        assert clock.today_key() == "2026-03-10"
        assert clock.yesterday_key() == "2026-03-09"
        assert clock.now_ms == _ms(datetime(2026, 3, 10, 12, tzinfo=UTC))

    def test_year_and_month(self):
        clock = Clock.at_day("2026-03-10", UTC)
        assert clock.year == 2026
        assert clock.month == 3

    def test_zone_changes_today(self):
        ts = _ms(datetime(2026, 3, 10, 2, tzinfo=UTC))
        assert Clock(ts, UTC).today_key() == "2026-03-10"
        assert Clock(ts, NEW_YORK).today_key() == "2026-03-09"
