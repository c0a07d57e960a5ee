"""Challenge definitions and progress evaluation for focus-rank."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

from focus_rank.dates import Clock, days_apart, month_key, month_of, week_start, year_of
from focus_rank.errors import ConfigurationError
from focus_rank.sessions import Session, chronological, focus_only


class ChallengeKind(str, Enum):
    TOTAL = "total"
    STREAK = "streak"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    RECURRING_MONTHLY = "recurring_monthly"


@dataclass(frozen=True)
class ChallengeDef:
    id: str
    name: str
    description: str
    kind: ChallengeKind
    target: int
    active: bool = True
    recurring_month: int | None = None  # 1-12, recurring_monthly only
    badge: str = "Trophy"

    def __post_init__(self) -> None:
        try:
            kind = ChallengeKind(self.kind)
        except ValueError as e:
            raise ConfigurationError(f"Unknown challenge kind: {self.kind!r}") from e
        object.__setattr__(self, "kind", kind)

        if not self.id:
            raise ConfigurationError("Challenge id must not be empty")
        if isinstance(self.target, bool) or not isinstance(self.target, int) or self.target <= 0:
            raise ConfigurationError(f"Challenge target must be a positive integer, got {self.target!r}")
        if kind == ChallengeKind.RECURRING_MONTHLY:
            month = self.recurring_month
            if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
                raise ConfigurationError(f"Recurring month must be 1-12, got {month!r}")
        elif self.recurring_month is not None:
            raise ConfigurationError("recurring_month is only valid for recurring_monthly challenges")


@dataclass
class ChallengeProgress:
    challenge_id: str
    period_key: str = ""  # occurrence year for recurring challenges
    progress: int = 0
    completed: bool = False
    completed_at: int | None = None  # epoch millis of the session that crossed the target


@dataclass
class ChallengeStatus:
    definition: ChallengeDef
    state: ChallengeProgress

    @property
    def completed(self) -> bool:
        return self.state.completed

    @property
    def fraction(self) -> float:
        """0.0 to 1.0."""
        return min(self.state.progress / self.definition.target, 1.0)

    def to_dict(self) -> dict:
        d = self.definition
        return {
            "id": d.id,
            "name": d.name,
            "description": d.description,
            "kind": d.kind.value,
            "target": d.target,
            "badge": d.badge,
            "recurringMonth": d.recurring_month,
            "periodKey": self.state.period_key,
            "progress": self.state.progress,
            "completed": self.state.completed,
            "completedAt": self.state.completed_at,
        }


DEFAULT_CHALLENGES: list[ChallengeDef] = [
    ChallengeDef("first_steps", "First Steps", "Complete your first focus session",
                 ChallengeKind.TOTAL, 1, badge="Target"),
    ChallengeDef("getting_started", "Getting Started", "Complete 10 focus sessions",
                 ChallengeKind.TOTAL, 10, badge="Sprout"),
    ChallengeDef("half_century", "Half Century", "Complete 50 total focus sessions",
                 ChallengeKind.TOTAL, 50, badge="Flame"),
    ChallengeDef("century_club", "Century Club", "Complete 100 total focus sessions",
                 ChallengeKind.TOTAL, 100, badge="Award"),
    ChallengeDef("dedication", "Dedication", "Complete 250 total focus sessions",
                 ChallengeKind.TOTAL, 250, badge="Star"),
    ChallengeDef("master", "Master", "Complete 500 total focus sessions",
                 ChallengeKind.TOTAL, 500, badge="Trophy"),
    ChallengeDef("streak_starter", "Streak Starter", "Maintain a 3-day streak",
                 ChallengeKind.STREAK, 3, badge="Flame"),
    ChallengeDef("week_warrior", "Week Warrior", "Maintain a 7-day streak",
                 ChallengeKind.STREAK, 7, badge="Swords"),
    ChallengeDef("consistency_king", "Consistency King", "Maintain a 30-day streak",
                 ChallengeKind.STREAK, 30, badge="Crown"),
    ChallengeDef("daily_dozen", "Daily Dozen", "Complete 12 focus sessions in one day",
                 ChallengeKind.DAILY, 12, badge="Sparkles"),
    ChallengeDef("weekend_warrior", "Weekend Warrior", "Complete 20 focus sessions in one week",
                 ChallengeKind.WEEKLY, 20, badge="Zap"),
    ChallengeDef("monthly_marathon", "Monthly Marathon", "Complete 100 focus sessions in one month",
                 ChallengeKind.MONTHLY, 100, badge="Medal"),
]


# --- Evaluation strategies ---
#
# Each strategy receives focus sessions in chronological order and returns
# (progress, crossed_at): the final progress value and the timestamp of the
# session at which the replay first reached the target (None if it never did).


@dataclass
class _EvalContext:
    clock: Clock
    cached_best: int = 0
    recurring_reset_yearly: bool = True


_Result = tuple[int, int | None]
_Strategy = Callable[[list[Session], ChallengeDef, _EvalContext], _Result]


def _eval_total(sessions: list[Session], definition: ChallengeDef, ctx: _EvalContext) -> _Result:
    crossed = sessions[definition.target - 1].completed_at if len(sessions) >= definition.target else None
    return len(sessions), crossed


def _eval_streak(sessions: list[Session], definition: ChallengeDef, ctx: _EvalContext) -> _Result:
    best = 0
    run = 0
    last_day: str | None = None
    crossed: int | None = None
    for s in sessions:
        day = ctx.clock.day_key(s.completed_at)
        if day != last_day:
            run = run + 1 if last_day is not None and days_apart(last_day, day) == 1 else 1
            last_day = day
            best = max(best, run)
        if crossed is None and best >= definition.target:
            crossed = s.completed_at
    return max(best, ctx.cached_best), crossed


def _window_counter(window_key: Callable[[str], str]) -> _Strategy:
    """Strategy for "most sessions inside any single window" kinds."""

    def evaluate(sessions: list[Session], definition: ChallengeDef, ctx: _EvalContext) -> _Result:
        counts: Counter = Counter()
        best = 0
        crossed: int | None = None
        for s in sessions:
            key = window_key(ctx.clock.day_key(s.completed_at))
            counts[key] += 1
            best = max(best, counts[key])
            if crossed is None and best >= definition.target:
                crossed = s.completed_at
        return best, crossed

    return evaluate


_eval_daily = _window_counter(lambda day: day)
_eval_weekly = _window_counter(week_start)
_eval_monthly = _window_counter(month_key)


def _eval_recurring_monthly(sessions: list[Session], definition: ChallengeDef, ctx: _EvalContext) -> _Result:
    in_month = [
        s for s in sessions
        if month_of(ctx.clock.day_key(s.completed_at)) == definition.recurring_month
    ]
    if ctx.recurring_reset_yearly:
        in_month = [s for s in in_month if year_of(ctx.clock.day_key(s.completed_at)) == ctx.clock.year]
    return _eval_monthly(in_month, definition, ctx)


_STRATEGIES: dict[ChallengeKind, _Strategy] = {
    ChallengeKind.TOTAL: _eval_total,
    ChallengeKind.STREAK: _eval_streak,
    ChallengeKind.DAILY: _eval_daily,
    ChallengeKind.WEEKLY: _eval_weekly,
    ChallengeKind.MONTHLY: _eval_monthly,
    ChallengeKind.RECURRING_MONTHLY: _eval_recurring_monthly,
}

_unhandled = set(ChallengeKind) - set(_STRATEGIES)
if _unhandled:
    raise RuntimeError(f"No evaluation strategy for challenge kinds: {sorted(k.value for k in _unhandled)}")


def period_key_for(definition: ChallengeDef, clock: Clock, recurring_reset_yearly: bool = True) -> str:
    """Key under which progress for the current occurrence is latched."""
    if definition.kind == ChallengeKind.RECURRING_MONTHLY and recurring_reset_yearly:
        return str(clock.year)
    return ""


def merge_progress(previous: ChallengeProgress | None, fresh: ChallengeProgress) -> ChallengeProgress:
    """Completion is a one-way latch; progress only moves up; completed_at is set once."""
    if previous is None:
        return fresh
    completed = previous.completed or fresh.completed
    completed_at = previous.completed_at if previous.completed else fresh.completed_at
    return ChallengeProgress(
        challenge_id=fresh.challenge_id,
        period_key=fresh.period_key,
        progress=max(previous.progress, fresh.progress),
        completed=completed,
        completed_at=completed_at if completed else None,
    )


def evaluate_challenges(
    catalog: Iterable[ChallengeDef] | None,
    sessions: Iterable[Session],
    clock: Clock,
    previous: Iterable[ChallengeProgress] | None = None,
    cached_best: int = 0,
    recurring_reset_yearly: bool = True,
) -> list[ChallengeStatus]:
    """Evaluate every active challenge against a session history.

    sessions may arrive in any order; break sessions are ignored. previous
    holds stored progress rows, merged in so completions never revert.
    A missing catalog yields an empty result.
    """
    if not catalog:
        return []

    ordered = chronological(focus_only(sessions))
    prev_map = {(p.challenge_id, p.period_key): p for p in (previous or [])}
    ctx = _EvalContext(clock=clock, cached_best=cached_best, recurring_reset_yearly=recurring_reset_yearly)

    results: list[ChallengeStatus] = []
    for definition in catalog:
        if not definition.active:
            continue
        progress, crossed = _STRATEGIES[definition.kind](ordered, definition, ctx)
        completed = progress >= definition.target
        completed_at = None
        if completed:
            # A cached best streak can complete a challenge that pruned history no longer shows.
            completed_at = crossed if crossed is not None else (ordered[-1].completed_at if ordered else clock.now_ms)
        fresh = ChallengeProgress(
            challenge_id=definition.id,
            period_key=period_key_for(definition, clock, recurring_reset_yearly),
            progress=progress,
            completed=completed,
            completed_at=completed_at,
        )
        merged = merge_progress(prev_map.get((definition.id, fresh.period_key)), fresh)
        results.append(ChallengeStatus(definition=definition, state=merged))
    return results


def split_statuses(statuses: list[ChallengeStatus]) -> tuple[list[ChallengeStatus], list[ChallengeStatus]]:
    """Return (active, completed)."""
    active = [s for s in statuses if not s.completed]
    completed = [s for s in statuses if s.completed]
    return active, completed


def get_newly_completed(
    previous: Iterable[ChallengeProgress], current: list[ChallengeStatus]
) -> list[ChallengeDef]:
    """Compare stored rows with a fresh evaluation, return newly completed definitions."""
    prev_done = {(p.challenge_id, p.period_key) for p in previous if p.completed}
    return [
        s.definition for s in current
        if s.completed and (s.definition.id, s.state.period_key) not in prev_done
    ]


def get_closest_challenges(statuses: list[ChallengeStatus], n: int = 3) -> list[ChallengeStatus]:
    """Return the N challenges closest to completion (highest fraction < 1.0)."""
    in_progress = [s for s in statuses if not s.completed]
    in_progress.sort(key=lambda s: s.fraction, reverse=True)
    return in_progress[:n]
