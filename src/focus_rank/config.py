"""Configuration file management for focus-rank.

Reads and writes ~/.focus-rank/config.json for the owner identity and the
tunable policy constants of the progress engine (weekly streak threshold,
focus-score decay, recurring challenge reset, sync retry budget).
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from focus_rank.errors import ConfigurationError
from focus_rank.focus_score import DECAY_FACTOR, DEFAULT_WINDOW_DAYS, SESSION_WEIGHT, validate_focus_params
from focus_rank.streaks import DEFAULT_WEEKLY_THRESHOLD

DEFAULT_HOME: Path = Path.home() / ".focus-rank"
DEFAULT_CONFIG_PATH: Path = DEFAULT_HOME / "config.json"


def load_config(config_path: Path | None = None) -> dict:
    """Load config from JSON file. Returns {} if file missing or invalid."""
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict, config_path: Path | None = None) -> None:
    """Write config dict to JSON file. Creates parent dirs if needed."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


@dataclass
class Settings:
    owner: str | None = None
    timezone: str | None = None  # IANA name; None = machine local time
    weekly_streak_threshold: int = DEFAULT_WEEKLY_THRESHOLD
    focus_window_days: int = DEFAULT_WINDOW_DAYS
    focus_decay: float = DECAY_FACTOR
    focus_weight: float = SESSION_WEIGHT
    recurring_reset_yearly: bool = True
    sync_attempts: int = 3
    sync_base_delay: float = 0.5
    sync_max_delay: float = 8.0
    db_path: Path = field(default_factory=lambda: DEFAULT_HOME / "data.db")
    local_store_path: Path = field(default_factory=lambda: DEFAULT_HOME / "local-sessions.json")

    @property
    def tz(self) -> tzinfo | None:
        return ZoneInfo(self.timezone) if self.timezone else None


def _as_int(data: dict, key: str, default: int) -> int:
    raw = data.get(key, default)
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}")
    return raw


def _as_float(data: dict, key: str, default: float) -> float:
    raw = data.get(key, default)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ConfigurationError(f"{key} must be a number, got {raw!r}")
    return float(raw)


def settings_from_dict(data: dict) -> Settings:
    """Build validated Settings. Invalid values raise ConfigurationError."""
    timezone = data.get("timezone") or None
    if timezone is not None:
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown timezone: {timezone!r}") from e

    settings = Settings(
        owner=data.get("owner") or None,
        timezone=timezone,
        weekly_streak_threshold=_as_int(data, "weekly_streak_threshold", DEFAULT_WEEKLY_THRESHOLD),
        focus_window_days=_as_int(data, "focus_window_days", DEFAULT_WINDOW_DAYS),
        focus_decay=_as_float(data, "focus_decay", DECAY_FACTOR),
        focus_weight=_as_float(data, "focus_weight", SESSION_WEIGHT),
        recurring_reset_yearly=bool(data.get("recurring_reset_yearly", True)),
        sync_attempts=_as_int(data, "sync_attempts", 3),
        sync_base_delay=_as_float(data, "sync_base_delay", 0.5),
        sync_max_delay=_as_float(data, "sync_max_delay", 8.0),
    )
    if data.get("db_path"):
        settings.db_path = Path(data["db_path"]).expanduser()
    if data.get("local_store_path"):
        settings.local_store_path = Path(data["local_store_path"]).expanduser()

    if settings.weekly_streak_threshold < 1:
        raise ConfigurationError("weekly_streak_threshold must be at least 1")
    if settings.sync_attempts < 1:
        raise ConfigurationError("sync_attempts must be at least 1")
    if settings.sync_base_delay < 0 or settings.sync_max_delay < 0:
        raise ConfigurationError("sync delays must not be negative")
    validate_focus_params(settings.focus_window_days, settings.focus_decay, settings.focus_weight)
    return settings


def load_settings(config_path: Path | None = None) -> Settings:
    return settings_from_dict(load_config(config_path))


def get_owner(config_path: Path | None = None) -> str | None:
    """Return the configured owner identity, or None if not set."""
    return load_config(config_path).get("owner") or None


def set_owner(owner: str, config_path: Path | None = None) -> None:
    """Persist the owner identity to config."""
    config = load_config(config_path)
    config["owner"] = owner
    save_config(config, config_path)
