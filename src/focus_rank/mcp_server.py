"""MCP server for focus-rank.

Exposes the configured owner's progress as read-only MCP tools.
Run via: python3 -m focus_rank.mcp_server
"""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from focus_rank.config import Settings, load_settings
from focus_rank.dates import system_clock

mcp = FastMCP(name="focus-rank")

_NO_OWNER = {"error": "No identity configured. Run focus-rank whoami --set NAME first."}


def _get_settings() -> Settings:
    return load_settings()


def _get_db(settings: Settings):
    from focus_rank.db import Database
    return Database(db_path=settings.db_path)


def _with_profile(render) -> dict[str, Any]:
    """Refresh the owner's profile and pass it to render. The database is always closed."""
    from focus_rank.progress import refresh_profile

    settings = _get_settings()
    if not settings.owner:
        return dict(_NO_OWNER)
    db = _get_db(settings)
    try:
        view = refresh_profile(db, settings.owner, system_clock(settings.tz), settings)
        return render(view)
    finally:
        db.close()


@mcp.tool()
def get_profile() -> dict[str, Any]:
    """Get streaks, level, challenge progress and current focus score."""
    return _with_profile(lambda view: view.to_dict())


@mcp.tool()
def get_level() -> dict[str, Any]:
    """Get current level, title, percent progress and sessions remaining to the next level."""
    return _with_profile(lambda view: {**view.level_view(), "lifetimeCount": view.lifetime_count})


@mcp.tool()
def get_challenges() -> dict[str, Any]:
    """Get active and completed challenges with progress."""
    return _with_profile(lambda view: view.challenge_view())


@mcp.tool()
def get_focus_score(days: int = 30) -> dict[str, Any]:
    """Get the focus score series for the most recent days (oldest first)."""
    from focus_rank.focus_score import current_focus_score, peak_focus_score

    def render(view) -> dict[str, Any]:
        return {
            "current": current_focus_score(view.focus_series),
            "peak": peak_focus_score(view.focus_series),
            "series": view.focus_view()[-max(days, 1):],
        }

    return _with_profile(render)


@mcp.tool()
def get_stats() -> dict[str, Any]:
    """Get session counts and minutes for today, this week, month, year and all time, plus top tags."""
    from focus_rank.sessions import Mode
    from focus_rank.stats import period_stats, tag_suggestions

    settings = _get_settings()
    if not settings.owner:
        return dict(_NO_OWNER)
    db = _get_db(settings)
    try:
        sessions = db.get_sessions(settings.owner, mode=Mode.FOCUS)
        return {
            "periods": period_stats(sessions, system_clock(settings.tz)),
            "tags": tag_suggestions(sessions, limit=10),
        }
    finally:
        db.close()


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
