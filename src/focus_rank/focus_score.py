"""Focus fitness: an exponentially decayed daily activity score.

Each day in the trailing window: score = score_prev * decay + sessions * weight.
Decay applies on empty days too, so the score drops when you take days off
and a single heavy day is smoothed out. The running value is carried unrounded;
only the reported points are rounded.
No side effects. Pure functions only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from focus_rank.dates import Clock, add_days
from focus_rank.errors import ConfigurationError
from focus_rank.sessions import Session
from focus_rank.streaks import group_by_day

DEFAULT_WINDOW_DAYS = 90
DECAY_FACTOR = 0.95  # ~70% left after a week off, ~49% after two
SESSION_WEIGHT = 10.0


@dataclass(frozen=True)
class FocusPoint:
    day: str
    score: int

    def to_dict(self) -> dict:
        return {"day": self.day, "score": self.score}


def validate_focus_params(window_days: int, decay: float, weight: float) -> None:
    if window_days < 1:
        raise ConfigurationError(f"Focus window must be at least 1 day, got {window_days}")
    if not 0 < decay <= 1:
        raise ConfigurationError(f"Focus decay must be in (0, 1], got {decay}")
    if weight < 0:
        raise ConfigurationError(f"Focus weight must not be negative, got {weight}")


def calculate_focus_series(
    sessions: Iterable[Session],
    clock: Clock,
    window_days: int = DEFAULT_WINDOW_DAYS,
    decay: float = DECAY_FACTOR,
    weight: float = SESSION_WEIGHT,
) -> list[FocusPoint]:
    """Return one point per day of the trailing window, oldest first, ending today."""
    validate_focus_params(window_days, decay, weight)

    today = clock.today_key()
    first_day = add_days(today, -(window_days - 1))
    day_counts = group_by_day(sessions, clock)

    series: list[FocusPoint] = []
    score = 0.0
    for offset in range(window_days):
        day = add_days(first_day, offset)
        score = score * decay + day_counts.get(day, 0) * weight
        series.append(FocusPoint(day=day, score=round(score)))
    return series


def current_focus_score(series: list[FocusPoint]) -> int:
    """Latest value of a focus series, 0 for an empty one."""
    return series[-1].score if series else 0


def peak_focus_score(series: list[FocusPoint]) -> int:
    return max((p.score for p in series), default=0)
