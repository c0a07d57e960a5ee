"""Daily and weekly streak tracking for focus-rank."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from focus_rank.dates import Clock, add_days, days_apart, week_start
from focus_rank.sessions import Session, focus_only

DEFAULT_WEEKLY_THRESHOLD = 5  # focus sessions a week needs to count


@dataclass
class StreakInfo:
    current_daily: int
    current_weekly: int
    best_daily: int
    last_active_date: str | None  # YYYY-MM-DD
    is_active_today: bool


def group_by_day(sessions: Iterable[Session], clock: Clock) -> Counter:
    """Count focus sessions per local day key."""
    return Counter(clock.day_key(s.completed_at) for s in focus_only(sessions))


def group_by_week(day_counts: Counter) -> Counter:
    """Roll per-day counts up to ISO weeks keyed by their Monday."""
    weeks: Counter = Counter()
    for key, count in day_counts.items():
        weeks[week_start(key)] += count
    return weeks


def get_streak_from_dates(sorted_dates: list[str], reference_date: str) -> int:
    """Given a list of active dates and a reference date,
    count consecutive days backwards from reference_date."""
    if not sorted_dates:
        return 0

    date_set = set(sorted_dates)
    if reference_date not in date_set:
        return 0

    streak = 0
    current = reference_date
    while current in date_set:
        streak += 1
        current = add_days(current, -1)

    return streak


def longest_run(day_keys: Iterable[str]) -> int:
    """Longest run of consecutive calendar days in a set of day keys."""
    sorted_dates = sorted(set(day_keys))
    if not sorted_dates:
        return 0

    longest = 1
    streak = 1
    for i in range(1, len(sorted_dates)):
        if days_apart(sorted_dates[i - 1], sorted_dates[i]) == 1:
            streak += 1
            longest = max(longest, streak)
        else:
            streak = 1
    return longest


def weekly_streak(day_counts: Counter, clock: Clock, threshold: int = DEFAULT_WEEKLY_THRESHOLD) -> int:
    """Consecutive weeks, ending with the current one, holding >= threshold sessions."""
    weeks = group_by_week(day_counts)
    streak = 0
    check_week = week_start(clock.today_key())
    while weeks.get(check_week, 0) >= threshold:
        streak += 1
        check_week = add_days(check_week, -7)
    return streak


def merge_best_streak(cached_best: int | None, *fresh: int) -> int:
    """Best streak never regresses: a higher cached value survives pruned history."""
    return max([cached_best or 0, *fresh])


def calculate_streak(
    sessions: Iterable[Session],
    clock: Clock,
    cached_best: int = 0,
    weekly_threshold: int = DEFAULT_WEEKLY_THRESHOLD,
) -> StreakInfo:
    """Calculate current and best streaks from an unordered session collection.

    Rules:
    - Active day = local day with at least one focus session
    - Daily streak counts back from today, or from yesterday when today is
      still empty (an empty today has not broken the streak yet)
    - Weekly streak counts back from the current ISO week
    - Best = max(current daily, longest historical run, cached best)
    """
    day_counts = group_by_day(sessions, clock)
    if not day_counts:
        return StreakInfo(
            current_daily=0,
            current_weekly=0,
            best_daily=merge_best_streak(cached_best),
            last_active_date=None,
            is_active_today=False,
        )

    sorted_dates = sorted(day_counts)
    today = clock.today_key()
    is_active_today = today in day_counts

    if is_active_today:
        current_daily = get_streak_from_dates(sorted_dates, today)
    else:
        current_daily = get_streak_from_dates(sorted_dates, clock.yesterday_key())

    best = merge_best_streak(cached_best, current_daily, longest_run(sorted_dates))

    return StreakInfo(
        current_daily=current_daily,
        current_weekly=weekly_streak(day_counts, clock, weekly_threshold),
        best_daily=best,
        last_active_date=sorted_dates[-1],
        is_active_today=is_active_today,
    )
