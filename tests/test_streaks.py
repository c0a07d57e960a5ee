"""Tests for the streak tracking system."""

from datetime import timezone

from focus_rank.dates import Clock, add_days, parse_day
from focus_rank.sessions import Mode, Session
from focus_rank.streaks import (
    calculate_streak,
    get_streak_from_dates,
    group_by_day,
    longest_run,
    merge_best_streak,
    weekly_streak,
)

UTC = timezone.utc
TODAY = "2026-03-10"  # Tuesday
CLOCK = Clock.at_day(TODAY, UTC)


def _focus(day: str, hour: int = 10, sid: str | None = None, mode: Mode = Mode.FOCUS) -> Session:
    return Session(
        id=sid or f"{day}-{hour}",
        mode=mode,
        duration=1500,
        completed_at=parse_day(day, UTC) + hour * 3_600_000,
    )


def _days_back(n: int, end: str = TODAY) -> list[Session]:
    return [_focus(add_days(end, -i)) for i in range(n)]


class TestGetStreakFromDates:
    """Tests for get_streak_from_dates function."""

    def test_consecutive_five_days(self):
        dates = ["2026-01-01", "2026-01-02", "2026-01-03", "2026-01-04", "2026-01-05"]
        assert get_streak_from_dates(dates, "2026-01-05") == 5

    def test_reference_not_in_dates(self):
        assert get_streak_from_dates(["2026-01-01", "2026-01-02"], "2026-01-05") == 0

    def test_gap_breaks_streak(self):
        dates = ["2026-01-01", "2026-01-02", "2026-01-04", "2026-01-05"]
        assert get_streak_from_dates(dates, "2026-01-05") == 2

    def test_empty_dates(self):
        assert get_streak_from_dates([], "2026-01-01") == 0

    def test_across_month_boundary(self):
        assert get_streak_from_dates(["2026-02-27", "2026-02-28", "2026-03-01"], "2026-03-01") == 3


class TestLongestRun:
    def test_empty(self):
        assert longest_run([]) == 0

    def test_picks_longest(self):
        assert longest_run(["2026-01-01", "2026-01-02", "2026-01-03", "2026-01-07", "2026-01-08"]) == 3

    def test_duplicates_ignored(self):
        assert longest_run(["2026-01-01", "2026-01-01", "2026-01-02"]) == 2


class TestCalculateStreak:
    """Tests for calculate_streak function."""

    def test_empty_history(self):
        info = calculate_streak([], CLOCK)
        assert info.current_daily == 0
        assert info.current_weekly == 0
        assert info.best_daily == 0
        assert info.last_active_date is None
        assert info.is_active_today is False

    def test_five_consecutive_days_including_today(self):
        info = calculate_streak(_days_back(5), CLOCK)
        assert info.current_daily == 5
        assert info.best_daily == 5
        assert info.is_active_today is True

    def test_gap_then_today(self):
        sessions = [_focus("2026-03-01"), _focus("2026-03-02"), _focus("2026-03-03"), _focus(TODAY)]
        info = calculate_streak(sessions, CLOCK)
        assert info.current_daily == 1
        assert info.best_daily == 3

    def test_today_empty_yesterday_active_keeps_streak(self):
        info = calculate_streak(_days_back(3, end="2026-03-09"), CLOCK)
        assert info.current_daily == 3
        assert info.is_active_today is False

    def test_two_days_ago_breaks_streak(self):
        info = calculate_streak(_days_back(3, end="2026-03-08"), CLOCK)
        assert info.current_daily == 0
        assert info.best_daily == 3

    def test_multiple_sessions_same_day_count_once(self):
        sessions = [_focus(TODAY, hour=h) for h in (8, 9, 10, 11)]
        assert calculate_streak(sessions, CLOCK).current_daily == 1

    def test_break_sessions_do_not_count(self):
        sessions = [_focus(TODAY, mode=Mode.BREAK), _focus("2026-03-09")]
        info = calculate_streak(sessions, CLOCK)
        assert info.is_active_today is False
        assert info.current_daily == 1

    def test_order_independent(self):
        sessions = _days_back(6)
        forward = calculate_streak(sessions, CLOCK)
        backward = calculate_streak(list(reversed(sessions)), CLOCK)
        assert forward == backward

    def test_cached_best_higher_survives(self):
        info = calculate_streak(_days_back(2), CLOCK, cached_best=40)
        assert info.best_daily == 40
        assert info.current_daily == 2

    def test_cached_best_lower_is_replaced(self):
        assert calculate_streak(_days_back(4), CLOCK, cached_best=1).best_daily == 4

    def test_cached_best_on_empty_history(self):
        assert calculate_streak([], CLOCK, cached_best=7).best_daily == 7

    def test_best_never_below_current(self):
        for n in range(0, 10):
            info = calculate_streak(_days_back(n), CLOCK)
            assert info.best_daily >= info.current_daily

    def test_day_boundary_uses_clock_zone(self):
        from zoneinfo import ZoneInfo

        tokyo = ZoneInfo("Asia/Tokyo")
        # 20:00 UTC on the 9th is already the 10th in Tokyo
        late = Session("x", Mode.FOCUS, 1500, parse_day("2026-03-09", UTC) + 20 * 3_600_000)
        clock = Clock.at_day(TODAY, tokyo)
        assert calculate_streak([late], clock).is_active_today is True


class TestWeeklyStreak:
    def test_threshold_met_this_and_last_week(self):
        sessions = [_focus("2026-03-09", hour=h) for h in range(8, 13)]
        sessions += [_focus("2026-03-03", hour=h) for h in range(8, 13)]
        counts = group_by_day(sessions, CLOCK)
        assert weekly_streak(counts, CLOCK) == 2

    def test_current_week_below_threshold_is_zero(self):
        sessions = [_focus("2026-03-09", hour=h) for h in range(8, 12)]
        sessions += [_focus("2026-03-03", hour=h) for h in range(8, 13)]
        assert weekly_streak(group_by_day(sessions, CLOCK), CLOCK) == 0

    def test_custom_threshold(self):
        sessions = [_focus("2026-03-09"), _focus("2026-03-02")]
        assert weekly_streak(group_by_day(sessions, CLOCK), CLOCK, threshold=1) == 2

    def test_sunday_counts_toward_preceding_week(self):
        sessions = [_focus("2026-03-08", hour=h) for h in range(8, 13)]
        clock = Clock.at_day("2026-03-08", UTC)
        assert calculate_streak(sessions, clock).current_weekly == 1
        assert calculate_streak(sessions, CLOCK).current_weekly == 0


class TestMergeBestStreak:
    def test_takes_max(self):
        assert merge_best_streak(3, 5, 2) == 5

    def test_none_cache(self):
        assert merge_best_streak(None, 4) == 4

    def test_cache_wins(self):
        assert merge_best_streak(10, 4) == 10
