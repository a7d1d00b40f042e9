"""
Command-line interface for PulseTracker.
"""

import asyncio
from pathlib import Path
from typing import Any, Awaitable

import typer
from rich.console import Console
from rich.table import Table

from pulse_tracker.alerts import (
    SlackWebhookSink,
    TeamHealthMonitor,
    find_overdue_tasks,
    format_blocker_alert,
    format_burnout_alert,
    format_kudos_message,
    format_overdue_message,
)
from pulse_tracker.blocked import (
    execute_action,
    get_blocked_tickets,
    get_blocker_stats,
    get_team_blocker_summary,
)
from pulse_tracker.collector import collect_snapshot, make_task_fetcher
from pulse_tracker.config import Settings, load_settings
from pulse_tracker.http_client import close_async_http_client
from pulse_tracker.metrics.heatmap import HEATMAP_DAYS, TeamHeatmap, calculate_team_heatmap
from pulse_tracker.metrics.members import MemberResolver, discover_members
from pulse_tracker.metrics.tasks import filter_tasks, task_assignees, task_statuses
from pulse_tracker.models import DataSnapshot, Score
from pulse_tracker.scoring import TeamReport, refresh_report
from pulse_tracker.stagnation import StagnationDetector
from pulse_tracker.wellbeing import (
    calculate_burnout,
    calculate_happiness,
    gather_inputs,
    get_burnout_recommendations,
    get_happiness_insights,
    should_celebrate,
    should_trigger_burnout_alert,
)

# --- Typer App ---
app = typer.Typer(help="Team productivity and health reports from ClickUp and GitHub.")
console = Console()

PRIORITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "green",
}

# Cell colours for activity levels 0-4
HEATMAP_LEVEL_STYLES = ("grey37", "green3", "green4", "dark_green", "bold dark_green")

# --- Common options ---

CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Directory containing pyproject.toml or .pulse-tracker.toml (default: current directory).",
)
INSECURE_OPTION = typer.Option(
    False,
    "--insecure",
    help="Disable SSL certificate verification for HTTPS requests.",
)
VERBOSE_OPTION = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Display detailed progress and identity-matching diagnostics.",
)


# --- Helper Functions ---


def run_async(coro: Awaitable[Any]) -> Any:
    """Run a coroutine to completion and release pooled HTTP connections."""

    async def _main():
        try:
            return await coro
        finally:
            await close_async_http_client()

    return asyncio.run(_main())


def _load(config: Path | None, insecure: bool, verbose: bool, **overrides) -> Settings:
    overrides["verify_ssl"] = False if insecure else None
    overrides["verbose"] = verbose or None
    try:
        return load_settings(config, overrides)
    except ValueError as e:
        console.print(f"[red]❌ Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from None


def _build_sink(settings: Settings) -> SlackWebhookSink | None:
    if not settings.slack.webhook_url:
        return None
    return SlackWebhookSink(
        settings.slack.webhook_url,
        verify_ssl=settings.verify_ssl,
        timeout=settings.request_timeout,
    )


def _score_style(value: int) -> str:
    if value >= 80:
        return "green"
    if value >= 50:
        return "yellow"
    return "red"


def _format_score(score: Score) -> str:
    style = _score_style(score.value)
    return f"[{style}]{score.value}/100[/{style}]"


def _print_errors(errors: tuple[str, ...]) -> None:
    if not errors:
        return
    console.print("\n[yellow]⚠️  Some sources could not be fetched:[/yellow]")
    for error in errors:
        console.print(f"   [yellow]- {error}[/yellow]")


# --- Rendering ---


def display_report(report: TeamReport) -> None:
    """Render the team report as Rich tables."""
    period = report.time_period
    console.print(
        f"\n[bold cyan]Team report[/bold cyan] "
        f"({period.start:%Y-%m-%d} → {period.end:%Y-%m-%d}, {period.days} days)"
    )

    scores = Table(title="Scores", show_header=True, header_style="bold magenta")
    scores.add_column("Score", style="cyan")
    scores.add_column("Value", justify="center")
    for label, score in (
        ("Health", report.scores.health),
        ("Productivity", report.scores.productivity),
        ("Quality", report.scores.quality),
    ):
        scores.add_row(label, _format_score(score))
    console.print(scores)

    tasks = report.tasks
    task_table = Table(title="Tasks", show_header=True, header_style="bold magenta")
    task_table.add_column("Metric", style="cyan")
    task_table.add_column("Value", justify="right")
    task_table.add_row("Total", str(tasks.total))
    task_table.add_row("Completed", str(tasks.completed))
    task_table.add_row("In progress", str(tasks.in_progress))
    task_table.add_row("Blocked", str(tasks.blocked))
    task_table.add_row("Velocity (points/week)", f"{tasks.velocity.average_per_week:.1f}")
    task_table.add_row("Story points completed", str(tasks.velocity.total_points))
    console.print(task_table)

    code = report.code
    prs = code.pull_requests
    code_table = Table(title="Code", show_header=True, header_style="bold magenta")
    code_table.add_column("Metric", style="cyan")
    code_table.add_column("Value", justify="right")
    code_table.add_row("Pull requests", str(prs.total))
    code_table.add_row("Open / merged / closed", f"{prs.open} / {prs.merged} / {prs.closed}")
    code_table.add_row("Avg time to merge (days)", f"{prs.average_time_to_merge:.1f}")
    code_table.add_row("Avg time to first review (hours)", f"{prs.average_time_to_first_review:.1f}")
    code_table.add_row("Avg PR size (lines)", str(code.average_pr_size))
    code_table.add_row("Commits", str(code.commits.total))
    console.print(code_table)

    if report.members:
        member_table = Table(title="Members", show_header=True, header_style="bold magenta")
        member_table.add_column("Member", style="cyan", no_wrap=True)
        member_table.add_column("Tasks done", justify="right")
        member_table.add_column("Blocked", justify="right")
        member_table.add_column("PRs merged", justify="right")
        member_table.add_column("Commits", justify="right")
        member_table.add_column("Productivity", justify="center")
        member_table.add_column("Health", justify="center")
        for entry in sorted(report.members, key=lambda m: m.productivity.value, reverse=True):
            metrics = entry.metrics
            member_table.add_row(
                metrics.member.name,
                f"{metrics.tasks.completed}/{metrics.tasks.total}",
                str(metrics.tasks.blocked),
                str(metrics.pull_requests.merged),
                str(metrics.commits.total),
                _format_score(entry.productivity),
                _format_score(entry.health),
            )
        console.print(member_table)

    _print_errors(report.errors)


# --- Commands ---


@app.command()
def report(
    days: int | None = typer.Option(
        None, "--days", "-d", help="Lookback window in days (default: window_days setting)."
    ),
    notify: bool = typer.Option(
        False,
        "--notify",
        help="Send health/quality alerts to Slack when scores fall below the threshold.",
    ),
    config: Path | None = CONFIG_OPTION,
    insecure: bool = INSECURE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Fetch team data and display health, productivity and quality scores."""
    settings = _load(config, insecure, verbose, window_days=days)

    async def _report() -> TeamReport:
        snapshot = await collect_snapshot(settings)
        team_report = refresh_report(snapshot, settings.window_days)
        display_report(team_report)

        overdue = find_overdue_tasks(snapshot.tasks, snapshot.fetched_at)
        if overdue:
            console.print(f"\n[yellow]⏰ {len(overdue)} in-progress task(s) are overdue[/yellow]")

        if notify:
            sink = _build_sink(settings)
            if sink is None:
                console.print("[yellow]Please configure a Slack webhook URL first.[/yellow]")
            else:
                monitor = TeamHealthMonitor(
                    sink, health_threshold=settings.alerts.health_threshold
                )
                sent = await monitor.evaluate(team_report.scores, snapshot.fetched_at)
                for kind in sent:
                    console.print(f"[green]✓ Sent {kind} alert[/green]")
                for task in overdue:
                    await sink.send(format_overdue_message(task), "follow-up")
        return team_report

    run_async(_report())


def _find_member(snapshot: DataSnapshot, name: str, verbose: bool):
    roster = list(snapshot.members) or discover_members(
        snapshot.tasks, snapshot.pull_requests, snapshot.commits
    )
    resolver = MemberResolver(roster, verbose=verbose)
    return resolver.resolve(handle=name), resolver


@app.command()
def member(
    name: str = typer.Argument(..., help="Member name, GitHub login, or ClickUp username."),
    days: int | None = typer.Option(
        None, "--days", "-d", help="Lookback window for fetched activity (default: window_days setting)."
    ),
    notify: bool = typer.Option(
        False,
        "--notify",
        help="Send a Slack burnout alert when risk is high, or kudos when the member is thriving.",
    ),
    config: Path | None = CONFIG_OPTION,
    insecure: bool = INSECURE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show burnout risk and happiness for one team member."""
    settings = _load(config, insecure, verbose, window_days=days)

    async def _member():
        snapshot = await collect_snapshot(settings)
        found, resolver = _find_member(snapshot, name, verbose)
        if found is None:
            console.print(f"[red]❌ No team member matches '{name}'.[/red]")
            _print_errors(snapshot.errors)
            raise typer.Exit(code=1)

        inputs = gather_inputs(
            found,
            snapshot.tasks,
            snapshot.pull_requests,
            snapshot.commits,
            resolver,
            snapshot.fetched_at,
        )
        burnout = calculate_burnout(inputs)
        happiness = calculate_happiness(inputs, burnout)

        console.print(f"\n[bold cyan]{found.name}[/bold cyan]")
        burnout_style = "red" if should_trigger_burnout_alert(burnout) else "green"
        console.print(
            f"  Burnout risk: [{burnout_style}]{burnout.score}/100 ({burnout.level})"
            f"[/{burnout_style}]"
        )
        console.print(
            f"  Happiness: {happiness.emoji} {happiness.score}/100 ({happiness.level})"
        )

        factors = Table(show_header=True, header_style="bold magenta")
        factors.add_column("Factor", style="cyan")
        factors.add_column("Value", justify="right")
        factors.add_column("Impact", justify="right")
        factors.add_column("Observation", justify="left")
        for factor in burnout.factors + happiness.factors:
            factors.add_row(factor.type, str(factor.value), f"{factor.impact:+d}", factor.description)
        if factors.row_count:
            console.print(factors)

        recommendations = get_burnout_recommendations(burnout)
        if recommendations:
            console.print("\n[bold]Recommendations:[/bold]")
            for line in recommendations:
                console.print(f"  • {line}")
        insights = get_happiness_insights(happiness)
        if insights:
            console.print("\n[bold]Insights:[/bold]")
            for line in insights:
                console.print(f"  • {line}")
        if should_celebrate(happiness):
            console.print(f"\n🎉 {found.name} is thriving!")

        if notify and should_trigger_burnout_alert(burnout):
            sink = _build_sink(settings)
            if sink is None:
                console.print("[yellow]Please configure a Slack webhook URL first.[/yellow]")
            else:
                if await sink.send(format_burnout_alert(found.name, burnout), "burnout"):
                    console.print("[green]✓ Burnout alert sent[/green]")
        if notify and should_celebrate(happiness):
            sink = _build_sink(settings)
            if sink is None:
                console.print("[yellow]Please configure a Slack webhook URL first.[/yellow]")
            else:
                kudos = format_kudos_message(
                    found.name,
                    commits=inputs.recent_activity.commits,
                    pull_requests=inputs.recent_activity.pull_requests,
                    completed_tasks=inputs.completed_tasks,
                )
                if await sink.send(kudos, "kudos"):
                    console.print("[green]✓ Kudos sent[/green]")
        _print_errors(snapshot.errors)

    run_async(_member())


@app.command()
def blocked(
    follow_up: bool = typer.Option(
        False,
        "--follow-up",
        help="Send the top suggested Slack message for tickets that need follow-up.",
    ),
    notify: bool = typer.Option(
        False,
        "--notify",
        help="Send a blocker alert to Slack for every critical ticket.",
    ),
    config: Path | None = CONFIG_OPTION,
    insecure: bool = INSECURE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """List blocked tickets with priority and suggested next steps."""
    settings = _load(config, insecure, verbose)

    async def _blocked():
        snapshot = await collect_snapshot(settings)
        tickets = get_blocked_tickets(snapshot.tasks, snapshot.fetched_at)
        if not tickets:
            console.print("[green]✓ No blocked tickets.[/green]")
            _print_errors(snapshot.errors)
            return

        stats = get_blocker_stats(tickets)
        console.print(
            f"\n[bold cyan]{stats.total} blocked ticket(s)[/bold cyan] "
            f"(critical {stats.critical}, high {stats.high}, "
            f"average {stats.avg_blocked_hours}h blocked)"
        )

        table = Table(title="Blocked Tickets", show_header=True, header_style="bold magenta")
        table.add_column("Ticket", style="cyan")
        table.add_column("Assignee")
        table.add_column("Priority", justify="center")
        table.add_column("Blocked", justify="right")
        table.add_column("Next step", justify="left")
        for ticket in tickets:
            style = PRIORITY_STYLES.get(ticket.priority_level, "white")
            top = ticket.suggestions[0] if ticket.suggestions else None
            table.add_row(
                ticket.task.name,
                ticket.assignee_name,
                f"[{style}]{ticket.priority_level}[/{style}]",
                f"{ticket.hours_blocked}h",
                top.action if top else "",
            )
        console.print(table)

        summary = Table(title="By Assignee", show_header=True, header_style="bold magenta")
        summary.add_column("Assignee", style="cyan")
        summary.add_column("Blocked", justify="right")
        summary.add_column("Critical", justify="right", style="red")
        for entry in get_team_blocker_summary(tickets):
            summary.add_row(entry.assignee, str(entry.count), str(entry.critical))
        console.print(summary)

        if follow_up:
            sink = _build_sink(settings)
            for ticket in tickets:
                if not ticket.needs_follow_up or not ticket.suggestions:
                    continue
                if await execute_action(ticket, ticket.suggestions[0], sink):
                    console.print(f"[green]✓ {ticket.suggestions[0].action}: {ticket.task.name}[/green]")
                else:
                    console.print(f"[yellow]Could not follow up on {ticket.task.name}[/yellow]")
        if notify:
            sink = _build_sink(settings)
            if sink is None:
                console.print("[yellow]Please configure a Slack webhook URL first.[/yellow]")
            else:
                for ticket in tickets:
                    if ticket.priority_level != "critical":
                        continue
                    if await sink.send(format_blocker_alert(ticket), "blocker"):
                        console.print(f"[green]✓ Blocker alert sent: {ticket.task.name}[/green]")
        _print_errors(snapshot.errors)

    run_async(_blocked())


def display_heatmap(team_heatmap: TeamHeatmap) -> None:
    """Render the activity heatmap: one row per member, one cell per day."""
    console.print(
        f"\n[bold cyan]Team activity[/bold cyan] "
        f"({team_heatmap.start:%Y-%m-%d} → {team_heatmap.end:%Y-%m-%d})"
    )
    if not team_heatmap.members:
        console.print("[dim]No activity data available.[/dim]")
        return

    table = Table(title="Activity Heatmap", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan", no_wrap=True)
    for index, cell in enumerate(team_heatmap.members[0].days):
        table.add_column(f"{cell.day:%d}" if index % 7 == 0 else "", justify="center")
    table.add_column("Total", justify="right")
    table.add_column("Avg/day", justify="right")
    for row in team_heatmap.members:
        cells = [
            f"[{HEATMAP_LEVEL_STYLES[cell.level]}]■[/{HEATMAP_LEVEL_STYLES[cell.level]}]"
            for cell in row.days
        ]
        table.add_row(
            row.member.name, *cells, str(row.total_activity), str(row.average_activity)
        )
    console.print(table)

    summary = team_heatmap.summary
    console.print(
        f"Total activity: [bold]{summary.total_activity}[/bold]  "
        f"Team avg/day: [bold]{summary.team_average}[/bold]  "
        f"Active members: [bold]{summary.active_members}[/bold]"
    )


@app.command()
def heatmap(
    days: int = typer.Option(
        HEATMAP_DAYS, "--days", "-d", min=1, help="Number of calendar days to show."
    ),
    config: Path | None = CONFIG_OPTION,
    insecure: bool = INSECURE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show daily activity per member (commits + 2×PRs + 1.5×tasks closed)."""
    settings = _load(config, insecure, verbose)

    async def _heatmap():
        snapshot = await collect_snapshot(settings, days=days)
        display_heatmap(
            calculate_team_heatmap(
                snapshot.tasks,
                snapshot.pull_requests,
                snapshot.commits,
                members=snapshot.members,
                days=days,
                now=snapshot.fetched_at,
                verbose=settings.verbose,
            )
        )
        _print_errors(snapshot.errors)

    run_async(_heatmap())


@app.command()
def tasks(
    status: str | None = typer.Option(
        None, "--status", "-s", help="Exact status label (case-insensitive), or 'all'."
    ),
    assignee: str | None = typer.Option(
        None, "--assignee", "-a", help="Part of an assignee's username."
    ),
    search: str | None = typer.Option(
        None, "--search", "-q", help="Part of the task name."
    ),
    config: Path | None = CONFIG_OPTION,
    insecure: bool = INSECURE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """List tracker tasks, filtered by status, assignee and name."""
    settings = _load(config, insecure, verbose)

    async def _tasks():
        snapshot = await collect_snapshot(settings)
        matched = filter_tasks(snapshot.tasks, status=status, assignee=assignee, search=search)
        if not matched:
            if snapshot.tasks:
                console.print("[yellow]No tasks match the current filters.[/yellow]")
                console.print(f"[dim]Statuses: {', '.join(task_statuses(snapshot.tasks))}[/dim]")
                console.print(f"[dim]Assignees: {', '.join(task_assignees(snapshot.tasks))}[/dim]")
            else:
                console.print("[yellow]No tasks found.[/yellow]")
            _print_errors(snapshot.errors)
            return

        table = Table(
            title=f"Tasks ({len(matched)} of {len(snapshot.tasks)})",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Task", style="cyan")
        table.add_column("Status")
        table.add_column("Assignees")
        table.add_column("Priority", justify="center")
        table.add_column("Updated", justify="right")
        for task in matched:
            table.add_row(
                task.name,
                task.status or "No Status",
                ", ".join(a.username for a in task.assignees) or "Unassigned",
                task.priority or "",
                f"{task.last_activity_at:%Y-%m-%d}",
            )
        console.print(table)
        _print_errors(snapshot.errors)

    run_async(_tasks())


@app.command()
def watch(
    threshold: float | None = typer.Option(
        None, "--threshold", "-t", help="Inactivity threshold before a task counts as stagnant."
    ),
    unit: str | None = typer.Option(
        None, "--unit", "-u", help="Threshold unit: 'hours' or 'seconds'."
    ),
    interval: float | None = typer.Option(
        None,
        "--interval",
        "-i",
        help="Check interval (minutes in hours mode, seconds in seconds mode).",
    ),
    alerts: bool | None = typer.Option(
        None, "--alerts/--no-alerts", help="Enable or disable Slack alerts (default: config)."
    ),
    config: Path | None = CONFIG_OPTION,
    insecure: bool = INSECURE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Monitor in-progress tasks and alert when they stagnate."""
    settings = _load(
        config,
        insecure,
        verbose,
        threshold_value=threshold,
        threshold_unit=unit,
        check_interval_value=interval,
        alerts_enabled=alerts,
    )
    if not settings.clickup.list_ids:
        console.print("[red]❌ No ClickUp lists configured (CLICKUP_LIST_IDS).[/red]")
        raise typer.Exit(code=1)
    if not settings.alerts.alerts_enabled:
        console.print("[yellow]Alerts are disabled; stagnant tasks will not be reported.[/yellow]")

    async def _watch():
        try:
            fetch_tasks = make_task_fetcher(settings)
        except ValueError as e:
            console.print(f"[red]❌ {e}[/red]")
            raise typer.Exit(code=1) from None
        detector = StagnationDetector(
            settings.alerts,
            sink=_build_sink(settings),
            fetch_tasks=fetch_tasks,
            verbose=settings.verbose,
        )
        await detector.refresh()
        console.print(
            f"👀 Watching {len(detector.tasks)} task(s); threshold "
            f"{settings.alerts.threshold_value:g} {settings.alerts.threshold_unit}. "
            "Press Ctrl+C to stop."
        )
        runner = detector.start()
        try:
            await runner
        finally:
            await detector.stop()

    try:
        run_async(_watch())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped monitoring.[/dim]")


@app.command()
def test_alert(
    config: Path | None = CONFIG_OPTION,
    insecure: bool = INSECURE_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Send a test message through the configured Slack webhook."""
    settings = _load(config, insecure, verbose)
    sink = _build_sink(settings)
    if sink is None:
        console.print("[yellow]Please configure a Slack webhook URL first.[/yellow]")
        raise typer.Exit(code=1)

    detector = StagnationDetector(settings.alerts, sink=sink, verbose=settings.verbose)
    if run_async(detector.send_test_alert()):
        console.print("[green]✓ Test alert sent[/green]")
    else:
        console.print("[red]❌ Test alert failed[/red]")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
