"""CLI commands for focus-rank."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from focus_rank.challenges import DEFAULT_CHALLENGES, ChallengeDef, get_closest_challenges
from focus_rank.config import DEFAULT_CONFIG_PATH, Settings, load_settings, set_owner
from focus_rank.dates import Clock, system_clock
from focus_rank.db import Database
from focus_rank.display import (
    console,
    print_catalog,
    print_challenges,
    print_focus,
    print_levels,
    print_no_data_message,
    print_no_owner_message,
    print_profile,
    print_stats,
    print_sync_result,
)
from focus_rank.errors import FocusRankError
from focus_rank.levels import LevelEntry
from focus_rank.local_store import LocalSessionStore
from focus_rank.progress import backfill_all, refresh_profile
from focus_rank.sessions import Mode, new_session
from focus_rank.stats import activity_heatmap, period_stats, tag_suggestions
from focus_rank.sync import sync_and_refresh

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="focus-rank",
        description="Streaks, levels and challenges for your focus sessions",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("profile", help="Show level, streaks and focus score")

    log_p = subparsers.add_parser("log", help="Record a completed session locally")
    log_p.add_argument("--minutes", "-m", type=int, default=25, help="Session length in minutes")
    log_p.add_argument("--mode", choices=[m.value for m in Mode], default=Mode.FOCUS.value)
    log_p.add_argument("--tag", "-t", default=None, help="Optional label")

    subparsers.add_parser("sync", help="Upload pending local sessions and refresh progress")
    subparsers.add_parser("challenges", help="List challenges with progress")
    focus_p = subparsers.add_parser("focus", help="Show the focus score history")
    focus_p.add_argument("--days", type=int, default=14, help="Days to display")
    subparsers.add_parser("stats", help="Period totals, busiest days and tags")

    levels_p = subparsers.add_parser("levels", help="Show or replace the level table")
    levels_sub = levels_p.add_subparsers(dest="levels_command")
    levels_sub.add_parser("show", help="Show the level table")
    levels_set = levels_sub.add_parser("set", help="Replace the level table from a JSON file")
    levels_set.add_argument("file", help="JSON list of {level, title, threshold}")

    ch_p = subparsers.add_parser("challenge", help="Administer the challenge catalog")
    ch_sub = ch_p.add_subparsers(dest="challenge_command")
    ch_create = ch_sub.add_parser("create", help="Create a challenge")
    ch_create.add_argument("id")
    ch_create.add_argument("--name", required=True)
    ch_create.add_argument("--description", default="")
    ch_create.add_argument("--kind", required=True)
    ch_create.add_argument("--target", type=int, required=True)
    ch_create.add_argument("--month", type=int, default=None, help="Month (1-12) for recurring_monthly")
    ch_create.add_argument("--badge", default="Trophy")
    ch_create.add_argument("--inactive", action="store_true")
    ch_toggle = ch_sub.add_parser("toggle", help="Activate or deactivate a challenge")
    ch_toggle.add_argument("id")
    ch_sub.add_parser("list", help="List challenge definitions")
    ch_sub.add_parser("seed", help="Install the default challenges")

    subparsers.add_parser("backfill", help="Recompute cached progress for every owner")
    clear_p = subparsers.add_parser("clear", help="Delete all synced sessions for the current owner")
    clear_p.add_argument("--yes", action="store_true", help="Confirm deletion")
    whoami_p = subparsers.add_parser("whoami", help="Show or set the owner identity")
    whoami_p.add_argument("--set", dest="owner", default=None, help="Owner identity to store")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "profile"

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings()
    except FocusRankError as e:
        console.print(f"[red]Invalid config in {DEFAULT_CONFIG_PATH}: {e}[/]")
        sys.exit(1)

    if command == "whoami":
        do_whoami(settings, owner=args.owner)
        return
    if command == "log":
        do_log(LocalSessionStore(settings.local_store_path), args.mode, args.minutes, args.tag)
        return

    clock = system_clock(settings.tz)
    db = Database(db_path=settings.db_path)

    try:
        if command == "profile":
            do_profile(db, settings, clock)
        elif command == "sync":
            do_sync(db, LocalSessionStore(settings.local_store_path), settings, clock)
        elif command == "challenges":
            do_challenges(db, settings, clock)
        elif command == "focus":
            do_focus(db, settings, clock, days=args.days)
        elif command == "stats":
            do_stats(db, settings, clock)
        elif command == "levels":
            if getattr(args, "levels_command", None) == "set":
                do_levels_set(db, Path(args.file))
            else:
                do_levels_show(db, settings, clock)
        elif command == "challenge":
            ch_cmd = getattr(args, "challenge_command", None)
            if ch_cmd == "create":
                do_challenge_create(
                    db, args.id, name=args.name, description=args.description, kind=args.kind,
                    target=args.target, month=args.month, badge=args.badge, active=not args.inactive,
                )
            elif ch_cmd == "toggle":
                do_challenge_toggle(db, args.id)
            elif ch_cmd == "seed":
                do_challenge_seed(db)
            else:
                do_challenge_list(db)
        elif command == "backfill":
            do_backfill(db, settings, clock)
        elif command == "clear":
            do_clear(db, settings, confirmed=args.yes)
    except FocusRankError as e:
        logger.debug("command %s failed", command, exc_info=True)
        console.print(f"[red]{e}[/]")
        sys.exit(1)
    finally:
        db.close()


def _definition_dict(d: ChallengeDef) -> dict:
    return {
        "id": d.id,
        "name": d.name,
        "kind": d.kind.value,
        "target": d.target,
        "active": d.active,
        "recurring_month": d.recurring_month,
    }


def do_whoami(settings: Settings, owner: str | None = None, config_path: Path | None = None) -> str | None:
    if owner:
        set_owner(owner, config_path)
        console.print(f"Owner set to [bold]{owner}[/]")
        return owner
    if settings.owner:
        console.print(settings.owner)
    else:
        print_no_owner_message()
    return settings.owner


def do_log(local: LocalSessionStore, mode: str, minutes: int, tag: str | None = None) -> dict:
    """Record a just-completed session in the local queue. Works without an owner."""
    session = local.record(new_session(mode, minutes * 60, tag=tag))
    console.print(f"Recorded {session.mode.value} session ({minutes}m). Run [bold]focus-rank sync[/] to upload.")
    return session.to_dict()


def do_sync(db: Database, local: LocalSessionStore, settings: Settings, clock: Clock) -> dict:
    """Push pending local sessions for the configured owner, then refresh progress."""
    if not settings.owner:
        print_no_owner_message()
        return {}
    report, view = sync_and_refresh(local, db, settings.owner, clock, settings)
    result = report.to_dict()
    profile = view.to_dict() if view is not None else None
    print_sync_result(result, profile)
    if profile is not None:
        result["profile"] = profile
    return result


def do_profile(db: Database, settings: Settings, clock: Clock) -> dict:
    if not settings.owner:
        print_no_owner_message()
        return {}
    view = refresh_profile(db, settings.owner, clock, settings)
    if view.lifetime_count == 0:
        print_no_data_message()
        return view.to_dict()
    data = view.to_dict()
    data["closestChallenges"] = [s.to_dict() for s in get_closest_challenges(view.challenges)]
    print_profile(data)
    return data


def do_challenges(db: Database, settings: Settings, clock: Clock) -> list[dict]:
    if not settings.owner:
        print_no_owner_message()
        return []
    view = refresh_profile(db, settings.owner, clock, settings)
    statuses = [s.to_dict() for s in view.challenges]
    print_challenges(statuses)
    return statuses


def do_focus(db: Database, settings: Settings, clock: Clock, days: int = 14) -> list[dict]:
    if not settings.owner:
        print_no_owner_message()
        return []
    view = refresh_profile(db, settings.owner, clock, settings)
    series = view.focus_view()
    print_focus(series, days=days)
    return series


def do_stats(db: Database, settings: Settings, clock: Clock) -> dict:
    if not settings.owner:
        print_no_owner_message()
        return {}
    sessions = db.get_sessions(settings.owner, mode=Mode.FOCUS)
    if not sessions:
        print_no_data_message()
        return {}
    data = {
        "periods": period_stats(sessions, clock),
        "heatmap": activity_heatmap(sessions, clock),
        "tags": tag_suggestions(sessions),
    }
    print_stats(data)
    return data


def do_levels_show(db: Database, settings: Settings, clock: Clock) -> list[dict]:
    entries = [{"level": e.level, "title": e.title, "threshold": e.threshold} for e in db.get_level_config()]
    current = None
    if settings.owner:
        current = refresh_profile(db, settings.owner, clock, settings).level.level
    print_levels(entries, current_level=current)
    return entries


def do_levels_set(db: Database, path: Path) -> int:
    """Replace the level table from a JSON file. Invalid tables are rejected whole."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        entries = [LevelEntry(int(e["level"]), str(e["title"]), int(e["threshold"])) for e in raw]
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        console.print(f"[red]Could not read level table from {path}: {e}[/]")
        return 0
    db.replace_level_config(entries)
    console.print(f"Level table replaced: {len(entries)} levels")
    return len(entries)


def do_challenge_create(
    db: Database,
    challenge_id: str,
    *,
    name: str,
    kind: str,
    target: int,
    description: str = "",
    month: int | None = None,
    badge: str = "Trophy",
    active: bool = True,
) -> dict:
    definition = ChallengeDef(
        challenge_id, name, description, kind, target,
        active=active, recurring_month=month, badge=badge,
    )
    db.create_challenge(definition)
    console.print(f"Created challenge [bold]{definition.id}[/]")
    return _definition_dict(definition)


def do_challenge_toggle(db: Database, challenge_id: str) -> bool | None:
    if db.get_challenge(challenge_id) is None:
        console.print(f"[red]No challenge with id {challenge_id}[/]")
        return None
    active = db.toggle_challenge_active(challenge_id)
    console.print(f"{challenge_id} is now {'active' if active else 'inactive'}")
    return active


def do_challenge_list(db: Database) -> list[dict]:
    definitions = [_definition_dict(d) for d in db.get_challenges()]
    print_catalog(definitions)
    return definitions


def do_challenge_seed(db: Database) -> int:
    """Install default challenges that are not in the catalog yet."""
    added = 0
    for definition in DEFAULT_CHALLENGES:
        if db.get_challenge(definition.id) is None:
            db.create_challenge(definition)
            added += 1
    console.print(f"Seeded {added} challenges")
    return added


def do_backfill(db: Database, settings: Settings, clock: Clock) -> dict:
    result = backfill_all(db, clock, settings)
    console.print(f"Backfilled {result['owners']} owners ({result['newly_completed']} new completions)")
    return result


def do_clear(db: Database, settings: Settings, confirmed: bool = False) -> int:
    if not settings.owner:
        print_no_owner_message()
        return 0
    if not confirmed:
        console.print("[red]This deletes every synced session for this owner. Re-run with --yes.[/]")
        return 0
    removed = db.clear_sessions(settings.owner)
    console.print(f"Deleted {removed} sessions")
    return removed
