"""Level progression from lifetime focus-session count. Pure functions, no side effects.

Hybrid curve: levels 1-5 double (0, 2, 4, 8, 16); from level 6 on each level
adds a gap that grows by 5 (31, 51, 76, 106, ...).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from focus_rank.errors import ConfigurationError

MAX_LEVEL = 100
DOUBLING_LEVELS = 5

TITLES: list[str] = [
    "Beginner",
    "Novice",
    "Apprentice",
    "Adept",
    "Expert",
    "Master",
    "Grandmaster",
    "Legend",
    "Mythic",
    "Immortal",
    "Transcendent",
    "Eternal",
    "Divine",
    "Omniscient",
    "Ultimate",
]


@dataclass(frozen=True)
class LevelEntry:
    level: int
    title: str
    threshold: int  # lifetime focus sessions needed to reach this level


@dataclass
class LevelInfo:
    level: int
    title: str
    threshold_low: int
    threshold_high: int
    remaining: int
    progress_percent: float

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "title": self.title,
            "thresholdLow": self.threshold_low,
            "thresholdHigh": self.threshold_high,
            "remaining": self.remaining,
            "progressPercent": self.progress_percent,
        }


def level_gap(level: int) -> int:
    """Sessions between level-1 and level for levels past the doubling range."""
    return 10 + 5 * (level - DOUBLING_LEVELS)


def threshold_for_level(level: int) -> int:
    """Lifetime sessions needed to reach a level on the built-in curve."""
    if level <= 1:
        return 0
    if level <= DOUBLING_LEVELS:
        return 2 ** (level - 1)
    total = 2 ** (DOUBLING_LEVELS - 1)
    for lv in range(DOUBLING_LEVELS + 1, level + 1):
        total += level_gap(lv)
    return total


def title_for_level(level: int) -> str:
    """Built-in title; levels beyond the title list keep the last one."""
    if level <= 1:
        return TITLES[0]
    return TITLES[min(level, len(TITLES)) - 1]


def default_level_config(max_level: int = MAX_LEVEL) -> list[LevelEntry]:
    """The built-in table used when no level configuration is stored."""
    return [
        LevelEntry(level=lv, title=title_for_level(lv), threshold=threshold_for_level(lv))
        for lv in range(1, max_level + 1)
    ]


def validate_level_config(entries: Iterable[LevelEntry]) -> list[LevelEntry]:
    """Return entries sorted by level, or raise ConfigurationError.

    Levels must start at 1 and be consecutive; thresholds must start at 0 and
    strictly increase; titles must be non-blank.
    """
    ordered = sorted(entries, key=lambda e: e.level)
    if not ordered:
        raise ConfigurationError("Level configuration must contain at least one level")
    if ordered[0].level != 1 or ordered[0].threshold != 0:
        raise ConfigurationError("Level configuration must start at level 1 with threshold 0")
    for prev, curr in zip(ordered, ordered[1:]):
        if curr.level != prev.level + 1:
            raise ConfigurationError(f"Level numbers must be consecutive: {prev.level} then {curr.level}")
        if curr.threshold <= prev.threshold:
            raise ConfigurationError(
                f"Level thresholds must strictly increase: level {curr.level} "
                f"({curr.threshold}) <= level {prev.level} ({prev.threshold})"
            )
    for entry in ordered:
        if not entry.title or not entry.title.strip():
            raise ConfigurationError(f"Level {entry.level} needs a title")
    return ordered


def level_for(count: int, config: list[LevelEntry] | None = None) -> LevelInfo:
    """Map a lifetime focus-session count to level, title and progress.

    The current level is the highest one whose threshold <= count. At the top
    configured level progress is pinned to 100 and remaining is 0.
    """
    table = sorted(config, key=lambda e: e.level) if config else default_level_config()
    count = max(0, count)

    current_idx = 0
    for i, entry in enumerate(table):
        if entry.threshold <= count:
            current_idx = i
        else:
            break

    current = table[current_idx]
    if current_idx == len(table) - 1:
        return LevelInfo(
            level=current.level,
            title=current.title,
            threshold_low=current.threshold,
            threshold_high=current.threshold,
            remaining=0,
            progress_percent=100.0,
        )

    nxt = table[current_idx + 1]
    span = nxt.threshold - current.threshold
    progress = (count - current.threshold) / span * 100
    return LevelInfo(
        level=current.level,
        title=current.title,
        threshold_low=current.threshold,
        threshold_high=nxt.threshold,
        remaining=nxt.threshold - count,
        progress_percent=min(100.0, max(0.0, progress)),
    )
