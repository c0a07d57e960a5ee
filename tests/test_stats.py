"""Tests for period totals, heatmap and tag suggestions."""

from datetime import timezone

from focus_rank.dates import Clock, parse_day
from focus_rank.sessions import Mode, Session
from focus_rank.stats import activity_heatmap, period_stats, tag_suggestions

UTC = timezone.utc
TODAY = "2026-03-10"  # Tuesday
CLOCK = Clock.at_day(TODAY, UTC)


def _session(day: str, n: int = 0, minutes: int = 25, tag: str | None = None, mode: Mode = Mode.FOCUS) -> Session:
    return Session(f"{day}-{n}", mode, minutes * 60, parse_day(day, UTC) + (8 + n) * 3_600_000, tag=tag)


class TestPeriodStats:
    def test_empty(self):
        stats = period_stats([], CLOCK)
        for key in ("total", "today", "week", "month", "year"):
            assert stats[key] == {"count": 0, "minutes": 0}

    def test_buckets(self):
        sessions = [
            _session(TODAY),
            _session("2026-03-09"),  # Monday, same week
            _session("2026-03-02"),  # same month, previous week
            _session("2026-01-15"),  # same year
            _session("2025-12-31"),  # previous year
        ]
        stats = period_stats(sessions, CLOCK)
        assert stats["today"]["count"] == 1
        assert stats["week"]["count"] == 2
        assert stats["month"]["count"] == 3
        assert stats["year"]["count"] == 4
        assert stats["total"] == {"count": 5, "minutes": 125}

    def test_breaks_excluded(self):
        stats = period_stats([_session(TODAY, mode=Mode.BREAK)], CLOCK)
        assert stats["today"]["count"] == 0


class TestActivityHeatmap:
    def test_groups_by_day(self):
        sessions = [_session(TODAY, 0), _session(TODAY, 1, minutes=50), _session("2026-03-01")]
        assert activity_heatmap(sessions, CLOCK) == [
            {"date": "2026-03-01", "count": 1, "minutes": 25},
            {"date": TODAY, "count": 2, "minutes": 75},
        ]

    def test_window_excludes_old_days(self):
        sessions = [_session("2025-01-01"), _session(TODAY)]
        assert [d["date"] for d in activity_heatmap(sessions, CLOCK, days=30)] == [TODAY]


class TestTagSuggestions:
    def test_ranked_by_usage_then_name(self):
        sessions = [
            _session(TODAY, 0, tag="reading"),
            _session(TODAY, 1, tag="writing"),
            _session(TODAY, 2, tag="writing"),
            _session(TODAY, 3, tag="code"),
            _session(TODAY, 4),
        ]
        assert tag_suggestions(sessions) == [
            {"tag": "writing", "count": 2},
            {"tag": "code", "count": 1},
            {"tag": "reading", "count": 1},
        ]

    def test_limit(self):
        sessions = [_session(TODAY, n, tag=f"t{n}") for n in range(5)]
        assert len(tag_suggestions(sessions, limit=2)) == 2
