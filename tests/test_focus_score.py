"""Tests for the decayed focus score."""

from datetime import timezone

import pytest

from focus_rank.dates import Clock, add_days, parse_day
from focus_rank.errors import ConfigurationError
from focus_rank.focus_score import (
    calculate_focus_series,
    current_focus_score,
    peak_focus_score,
)
from focus_rank.sessions import Mode, Session

UTC = timezone.utc
TODAY = "2026-03-10"
CLOCK = Clock.at_day(TODAY, UTC)


def _focus(day: str, n: int = 0, mode: Mode = Mode.FOCUS) -> Session:
    return Session(f"{day}-{n}", mode, 1500, parse_day(day, UTC) + (8 + n) * 3_600_000)


class TestCalculateFocusSeries:
    def test_empty_history_all_zero(self):
        series = calculate_focus_series([], CLOCK)
        assert len(series) == 90
        assert all(p.score == 0 for p in series)
        assert series[-1].day == TODAY
        assert series[0].day == add_days(TODAY, -89)

    def test_single_session_today(self):
        series = calculate_focus_series([_focus(TODAY)], CLOCK)
        assert current_focus_score(series) == 10

    def test_decay_applied_before_adding(self):
        sessions = [_focus("2026-03-09"), _focus(TODAY)]
        series = calculate_focus_series(sessions, CLOCK)
        # 10 * 0.95 + 10 = 19.5, rounded half-to-even
        assert series[-2].score == 10
        assert series[-1].score == round(19.5)

    def test_score_drops_on_days_off(self):
        sessions = [_focus("2026-03-01", n) for n in range(4)]
        series = calculate_focus_series(sessions, CLOCK, window_days=10)
        assert series[0].score == 40
        assert series[-1].score == round(40 * 0.95 ** 9)

    def test_running_value_not_rounded(self):
        sessions = [_focus(add_days(TODAY, -i)) for i in range(5)]
        series = calculate_focus_series(sessions, CLOCK, window_days=5)
        expected = 0.0
        for _ in range(5):
            expected = expected * 0.95 + 10
        assert series[-1].score == round(expected)

    def test_breaks_ignored(self):
        series = calculate_focus_series([_focus(TODAY, mode=Mode.BREAK)], CLOCK)
        assert current_focus_score(series) == 0

    def test_sessions_outside_window_ignored(self):
        series = calculate_focus_series([_focus(add_days(TODAY, -30))], CLOCK, window_days=7)
        assert peak_focus_score(series) == 0

    def test_custom_weight(self):
        series = calculate_focus_series([_focus(TODAY)], CLOCK, weight=3.0)
        assert current_focus_score(series) == 3

    def test_point_shape(self):
        assert calculate_focus_series([], CLOCK, window_days=1)[0].to_dict() == {"day": TODAY, "score": 0}


class TestValidation:
    def test_zero_window(self):
        with pytest.raises(ConfigurationError):
            calculate_focus_series([], CLOCK, window_days=0)

    def test_decay_above_one(self):
        with pytest.raises(ConfigurationError):
            calculate_focus_series([], CLOCK, decay=1.5)

    def test_negative_weight(self):
        with pytest.raises(ConfigurationError):
            calculate_focus_series([], CLOCK, weight=-1)


class TestSummaries:
    def test_empty_series(self):
        assert current_focus_score([]) == 0
        assert peak_focus_score([]) == 0
