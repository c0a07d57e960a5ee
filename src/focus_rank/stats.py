"""Period totals, activity heatmap and tag usage for focus-rank.

Pure functions that aggregate focus sessions into summary dicts.
No side effects, no DB access - accepts sessions as input.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from focus_rank.dates import Clock, days_apart, month_key, week_start, year_of
from focus_rank.sessions import Session, focus_only


def _bucket(sessions: list[Session]) -> dict:
    return {
        "count": len(sessions),
        "minutes": round(sum(s.duration for s in sessions) / 60),
    }


def period_stats(sessions: Iterable[Session], clock: Clock) -> dict:
    """Count and minutes for total, today, this ISO week, this month and this year."""
    focus = focus_only(sessions)
    today = clock.today_key()
    this_week = week_start(today)
    this_month = month_key(today)
    this_year = year_of(today)

    keyed = [(clock.day_key(s.completed_at), s) for s in focus]
    return {
        "total": _bucket(focus),
        "today": _bucket([s for day, s in keyed if day == today]),
        "week": _bucket([s for day, s in keyed if week_start(day) == this_week]),
        "month": _bucket([s for day, s in keyed if month_key(day) == this_month]),
        "year": _bucket([s for day, s in keyed if year_of(day) == this_year]),
    }


def activity_heatmap(sessions: Iterable[Session], clock: Clock, days: int = 365) -> list[dict]:
    """Per-day count and minutes over the trailing window, only days with activity, oldest first."""
    today = clock.today_key()
    counts: Counter = Counter()
    seconds: Counter = Counter()
    for s in focus_only(sessions):
        day = clock.day_key(s.completed_at)
        if 0 <= days_apart(day, today) < days:
            counts[day] += 1
            seconds[day] += s.duration
    return [
        {"date": day, "count": counts[day], "minutes": round(seconds[day] / 60)}
        for day in sorted(counts)
    ]


def tag_suggestions(sessions: Iterable[Session], limit: int | None = None) -> list[dict]:
    """Tags by usage frequency, most used first. Ties sort alphabetically."""
    counts = Counter(s.tag for s in sessions if s.tag)
    ranked = sorted(counts.items(), key=lambda x: (-x[1], x[0]))
    if limit is not None:
        ranked = ranked[:limit]
    return [{"tag": tag, "count": count} for tag, count in ranked]
