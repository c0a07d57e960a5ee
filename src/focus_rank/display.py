"""Rich terminal display for focus-rank."""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

# Level bands to Rich color names, by level floor
_LEVEL_COLORS: list[tuple[int, str]] = [
    (50, "orange_red1"),
    (30, "dark_violet"),
    (20, "purple"),
    (15, "cyan"),
    (10, "deep_sky_blue1"),
    (5, "gold1"),
    (3, "grey70"),
    (1, "dark_orange3"),
]


def level_color(level: int) -> str:
    for floor, color in _LEVEL_COLORS:
        if level >= floor:
            return color
    return "dark_orange3"


def format_number(n: int) -> str:
    """Format large numbers: 421543 -> '421.5K', 1200 -> '1,200', 1234567 -> '1.2M'."""
    if n >= 1_000_000:
        value = n / 1_000_000
        if value >= 100:
            return f"{value:.0f}M"
        return f"{value:.1f}M"
    if n >= 10_000:
        value = n / 1_000
        if value >= 1000:
            return f"{value:.0f}K"
        return f"{value:.1f}K"
    return f"{n:,}"


def format_minutes(minutes: int) -> str:
    """120 -> '2h 0m', 45 -> '45m'."""
    if minutes >= 60:
        return f"{minutes // 60}h {minutes % 60}m"
    return f"{minutes}m"


def _progress_bar(current: int, total: int, width: int = 20) -> str:
    """Render a progress bar as text: [████████░░░░░░░░░░░░]."""
    if total <= 0:
        return "[" + "█" * width + "]"
    ratio = min(max(current / total, 0.0), 1.0)
    filled = int(ratio * width)
    return "[" + "█" * filled + "░" * (width - filled) + "]"


def print_profile(data: dict) -> None:
    """Print the main profile panel: level, streaks, focus score and closest challenges.

    data is ProfileView.to_dict() plus an optional "closestChallenges" list.
    """
    info = data.get("levelInfo", {})
    level = info.get("level", 1)
    color = level_color(level)

    lines: list[str] = [""]
    lines.append(f"  [bold {color}]Level {level} - {info.get('title', '')}[/]")

    span = info.get("thresholdHigh", 0) - info.get("thresholdLow", 0)
    if span > 0:
        done = span - info.get("remaining", 0)
        bar = _progress_bar(done, span)
        lines.append(f"  {bar} {info.get('progressPercent', 0)}%  ({info.get('remaining', 0)} to go)")
    else:
        lines.append(f"  {_progress_bar(1, 1)} MAX LEVEL")
    lines.append(f"  Sessions: [bold]{format_number(data.get('lifetimeCount', 0))}[/]")

    lines.append("")
    lines.append(
        f"  \U0001f525 Streak: {data.get('currentDailyStreak', 0)} days  |  "
        f"Best: {data.get('bestDailyStreak', 0)}"
    )
    lines.append(
        f"  \U0001f4c5 Weekly: {data.get('currentWeeklyStreak', 0)} weeks  |  "
        f"\U0001f3af Focus: {data.get('focusScore', 0)}"
    )

    completed = data.get("completedChallenges", [])
    if completed:
        recent = sorted(completed, key=lambda c: c.get("completedAt") or 0, reverse=True)
        lines.append("")
        lines.append("  [bold]Recent Challenges:[/]")
        for ch in recent[:3]:
            lines.append(f"  ✅ {ch['name']}")

    closest = data.get("closestChallenges", [])
    if closest:
        lines.append("")
        lines.append("  [bold]Almost There:[/]")
        for ch in closest[:3]:
            target = ch.get("target", 0)
            progress = min(ch.get("progress", 0), target)
            pct = int(progress * 100 / target) if target else 0
            lines.append(f"  ⏳ {ch['name']}: {progress}/{target} ({pct}%)")

    lines.append("")
    panel = Panel(
        "\n".join(lines),
        title="[bold]FOCUS RANK[/]",
        box=box.ROUNDED,
        border_style=color,
        width=50,
    )
    console.print(panel)


def print_challenges(statuses: list[dict]) -> None:
    """Print every challenge with progress. Completed first by date desc, then by progress desc."""
    completed = [c for c in statuses if c.get("completed")]
    active = [c for c in statuses if not c.get("completed")]
    completed.sort(key=lambda c: c.get("completedAt") or 0, reverse=True)
    active.sort(key=lambda c: c.get("progress", 0) / max(c.get("target", 1), 1), reverse=True)

    table = Table(
        title="Challenges",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("", width=2)
    table.add_column("Challenge", min_width=20)
    table.add_column("Kind", width=16)
    table.add_column("Progress", min_width=18)

    for ch in completed + active:
        icon = "✅" if ch.get("completed") else "⏳"
        name_text = f"[bold]{ch['name']}[/]\n{ch.get('description', '')}"
        target = ch.get("target", 0)
        progress = min(ch.get("progress", 0), target)
        pct = int(progress * 100 / target) if target else 0
        table.add_row(icon, name_text, ch.get("kind", ""), f"{_progress_bar(progress, target, width=10)} {pct}%")

    console.print(table)


def print_catalog(definitions: list[dict]) -> None:
    """Print challenge definitions for administration."""
    table = Table(title="Challenge Catalog", box=box.ROUNDED, header_style="bold")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Target", justify="right")
    table.add_column("Active", justify="center")
    for d in definitions:
        kind = d["kind"]
        if d.get("recurring_month"):
            kind = f"{kind} ({d['recurring_month']})"
        table.add_row(d["id"], d["name"], kind, str(d["target"]), "✓" if d.get("active") else "-")
    console.print(table)


def print_levels(entries: list[dict], current_level: int | None = None, limit: int = 25) -> None:
    """Print the level table, highlighting the current level."""
    table = Table(title="Levels", box=box.ROUNDED, header_style="bold")
    table.add_column("Level", justify="right")
    table.add_column("Title")
    table.add_column("Sessions", justify="right")
    for e in entries[:limit]:
        style = "bold green" if e["level"] == current_level else None
        table.add_row(str(e["level"]), e["title"], format_number(e["threshold"]), style=style)
    if len(entries) > limit:
        table.add_row("...", f"{len(entries) - limit} more", "")
    console.print(table)


def print_focus(series: list[dict], days: int = 14) -> None:
    """Print the recent tail of the focus score series as bars."""
    tail = series[-days:]
    peak = max((p["score"] for p in series), default=0)
    lines: list[str] = [""]
    for point in tail:
        bar = _progress_bar(point["score"], peak, width=20)
        lines.append(f"  {point['day']}  {bar} {point['score']}")
    lines.append("")
    lines.append(f"  Current: [bold]{tail[-1]['score'] if tail else 0}[/]  |  Peak: {peak}")
    lines.append("")
    console.print(Panel("\n".join(lines), title="[bold]Focus Score[/]", box=box.ROUNDED, border_style="cyan", width=60))


def print_stats(data: dict) -> None:
    """Print period totals, busiest days and tags as a table."""
    table = Table(
        title="Focus Stats",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("Period", style="bold")
    table.add_column("Sessions", justify="right")
    table.add_column("Time", justify="right")

    periods = data.get("periods", {})
    for label, key in (("Today", "today"), ("This Week", "week"), ("This Month", "month"),
                       ("This Year", "year"), ("All Time", "total")):
        bucket = periods.get(key, {})
        table.add_row(label, format_number(bucket.get("count", 0)), format_minutes(bucket.get("minutes", 0)))

    heatmap = data.get("heatmap", [])
    if heatmap:
        table.add_section()
        table.add_row("[bold]Busiest Days[/]", "", "")
        for day in sorted(heatmap, key=lambda d: d["count"], reverse=True)[:5]:
            table.add_row(f"  {day['date']}", str(day["count"]), format_minutes(day["minutes"]))

    tags = data.get("tags", [])
    if tags:
        table.add_section()
        table.add_row("[bold]Top Tags[/]", "", "")
        for t in tags[:10]:
            table.add_row(f"  {t['tag']}", str(t["count"]), "")

    console.print(table)


def print_sync_result(report: dict, profile: dict | None = None) -> None:
    """Print sync results summary."""
    lines: list[str] = [""]
    lines.append(f"  Uploaded:        {report.get('inserted', 0)}")
    lines.append(f"  Already synced:  {report.get('duplicates', 0)}")
    rejected = report.get("rejected", [])
    lines.append(f"  Failed:          {len(rejected)}")
    for r in rejected[:5]:
        lines.append(f"    [red]{r['id']}[/]: {r.get('error') or 'unknown error'}")

    if profile is not None:
        info = profile.get("levelInfo", {})
        lines.append("")
        lines.append(f"  Sessions:        {format_number(profile.get('lifetimeCount', 0))}")
        lines.append(f"  Level:           {info.get('level', 1)} - {info.get('title', '')}")
        lines.append(f"  Streak:          {profile.get('currentDailyStreak', 0)} days")
        new_names = profile.get("newlyCompleted", [])
        if new_names:
            lines.append("")
            lines.append("  [bold]New Challenges Completed:[/]")
            for name in new_names:
                lines.append(f"  \U0001f3c6 {name}")

    lines.append("")
    panel = Panel(
        "\n".join(lines),
        title="[bold]Sync Complete[/]",
        box=box.ROUNDED,
        border_style="red" if rejected else "green",
        width=50,
    )
    console.print(panel)


def print_no_data_message() -> None:
    """Print message when no data is available."""
    panel = Panel(
        "\n  No focus sessions yet. Record one with [bold]focus-rank log[/], then run [bold]focus-rank sync[/].\n",
        title="[bold]FOCUS RANK[/]",
        box=box.ROUNDED,
        border_style="grey50",
        width=50,
    )
    console.print(panel)


def print_no_owner_message() -> None:
    panel = Panel(
        "\n  No identity configured. Run [bold]focus-rank whoami --set NAME[/] first.\n",
        title="[bold]FOCUS RANK[/]",
        box=box.ROUNDED,
        border_style="grey50",
        width=50,
    )
    console.print(panel)
