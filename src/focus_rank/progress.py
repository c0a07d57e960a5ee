"""Profile aggregation: streaks, level, challenges and focus score for one owner.

Everything here is recomputed from the authoritative session store on each
read. The stored aggregate is a cache: the best streak is merged with max so
it never regresses, and challenge completions are latched, but every other
field is reproducible by replaying the owner's sessions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from focus_rank.challenges import (
    ChallengeDef,
    ChallengeProgress,
    ChallengeStatus,
    evaluate_challenges,
    get_newly_completed,
    split_statuses,
)
from focus_rank.config import Settings
from focus_rank.dates import Clock
from focus_rank.db import Database
from focus_rank.focus_score import FocusPoint, calculate_focus_series, current_focus_score
from focus_rank.levels import LevelEntry, LevelInfo, level_for
from focus_rank.sessions import Mode, Session, focus_only
from focus_rank.stats import period_stats
from focus_rank.streaks import StreakInfo, calculate_streak, merge_best_streak

logger = logging.getLogger(__name__)

CACHE_BEST_STREAK = "best_daily_streak"


@dataclass
class ProfileView:
    owner: str | None
    lifetime_count: int
    streaks: StreakInfo
    level: LevelInfo
    challenges: list[ChallengeStatus]
    focus_series: list[FocusPoint]
    period_stats: dict
    newly_completed: list[ChallengeDef] = field(default_factory=list)

    def streak_view(self) -> dict:
        return {
            "lifetimeCount": self.lifetime_count,
            "currentDailyStreak": self.streaks.current_daily,
            "currentWeeklyStreak": self.streaks.current_weekly,
            "bestDailyStreak": self.streaks.best_daily,
        }

    def level_view(self) -> dict:
        return {
            "level": self.level.level,
            "title": self.level.title,
            "progressPercent": self.level.progress_percent,
            "remaining": self.level.remaining,
        }

    def challenge_view(self) -> dict:
        active, completed = split_statuses(self.challenges)
        return {
            "activeChallenges": [s.to_dict() for s in active],
            "completedChallenges": [s.to_dict() for s in completed],
        }

    def focus_view(self) -> list[dict]:
        return [p.to_dict() for p in self.focus_series]

    def to_dict(self) -> dict:
        return {
            "owner": self.owner,
            **self.streak_view(),
            "levelInfo": self.level.to_dict(),
            **self.challenge_view(),
            "focusScore": current_focus_score(self.focus_series),
            "focusSeries": self.focus_view(),
            "periodStats": self.period_stats,
            "newlyCompleted": [d.name for d in self.newly_completed],
        }


def compute_profile(
    sessions: Iterable[Session],
    catalog: list[ChallengeDef] | None,
    level_config: list[LevelEntry] | None,
    clock: Clock,
    settings: Settings | None = None,
    cached_best: int = 0,
    previous_progress: list[ChallengeProgress] | None = None,
    owner: str | None = None,
) -> ProfileView:
    """Derive the full aggregate from a session history. Pure; order of sessions is irrelevant."""
    settings = settings or Settings()
    focus = focus_only(sessions)
    previous_progress = previous_progress or []

    streaks = calculate_streak(
        focus, clock, cached_best=cached_best, weekly_threshold=settings.weekly_streak_threshold
    )
    statuses = evaluate_challenges(
        catalog,
        focus,
        clock,
        previous=previous_progress,
        cached_best=streaks.best_daily,
        recurring_reset_yearly=settings.recurring_reset_yearly,
    )
    series = calculate_focus_series(
        focus,
        clock,
        window_days=settings.focus_window_days,
        decay=settings.focus_decay,
        weight=settings.focus_weight,
    )
    return ProfileView(
        owner=owner,
        lifetime_count=len(focus),
        streaks=streaks,
        level=level_for(len(focus), level_config),
        challenges=statuses,
        focus_series=series,
        period_stats=period_stats(focus, clock),
        newly_completed=get_newly_completed(previous_progress, statuses),
    )


def refresh_profile(db: Database, owner: str, clock: Clock, settings: Settings | None = None) -> ProfileView:
    """Recompute an owner's aggregate from the store and write the caches back."""
    cached_best = int(db.get_cache(owner, CACHE_BEST_STREAK) or "0")
    view = compute_profile(
        db.get_sessions(owner, mode=Mode.FOCUS),
        db.get_challenges(active_only=True),
        db.get_level_config(),
        clock,
        settings=settings,
        cached_best=cached_best,
        previous_progress=db.get_progress(owner),
        owner=owner,
    )

    db.save_progress(owner, [s.state for s in view.challenges])
    db.set_cache(owner, CACHE_BEST_STREAK, merge_best_streak(cached_best, view.streaks.best_daily))
    db.set_cache(owner, "lifetime_count", view.lifetime_count)
    db.set_cache(owner, "current_daily_streak", view.streaks.current_daily)
    db.set_cache(owner, "current_weekly_streak", view.streaks.current_weekly)
    db.set_cache(owner, "level", view.level.level)
    db.set_cache(owner, "last_refresh", clock.now_ms)

    for definition in view.newly_completed:
        logger.info("challenge completed owner=%s challenge=%s", owner, definition.id)
    return view


def backfill_all(db: Database, clock: Clock, settings: Settings | None = None) -> dict:
    """Pre-populate cached aggregates for every owner in the store."""
    owners = db.list_owners()
    completed = 0
    for owner in owners:
        view = refresh_profile(db, owner, clock, settings)
        completed += len(view.newly_completed)
    logger.info("backfill owners=%s newly_completed=%s", len(owners), completed)
    return {"owners": len(owners), "newly_completed": completed}
