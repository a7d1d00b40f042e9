"""
Team activity heatmap.

Every member gets one cell per UTC calendar day over a trailing window. A cell
weighs the day's work as commits + 2 x pull requests opened + 1.5 x tasks
closed, and buckets the weighted value into an intensity level from 0 to 4.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, NamedTuple

from pulse_tracker.metrics.base import round_half_up
from pulse_tracker.metrics.members import (
    MemberResolver,
    commits_for_member,
    discover_members,
    pull_requests_for_member,
    tasks_for_member,
)
from pulse_tracker.models import Commit, Member, PullRequest, Task, utc_now

HEATMAP_DAYS = 14

ACTIVITY_WEIGHTS = {
    "commits": 1,
    "pull_requests": 2,
    "tasks": 1.5,
}

# Inclusive upper bounds of levels 1-3; anything above is level 4
LEVEL_BOUNDS = (2, 5, 10)


class HeatmapDay(NamedTuple):
    day: date
    commits: int = 0
    pull_requests: int = 0
    tasks: int = 0
    activity: int = 0
    level: int = 0


class MemberHeatmap(NamedTuple):
    member: Member
    days: tuple[HeatmapDay, ...]
    total_activity: int
    average_activity: int


class HeatmapSummary(NamedTuple):
    total_activity: int = 0
    team_average: int = 0
    active_members: int = 0


class TeamHeatmap(NamedTuple):
    start: date
    end: date
    members: tuple[MemberHeatmap, ...]
    summary: HeatmapSummary


def activity_level(weighted: float) -> int:
    """Intensity level for an unrounded weighted activity value."""
    if weighted <= 0:
        return 0
    for level, bound in enumerate(LEVEL_BOUNDS, start=1):
        if weighted <= bound:
            return level
    return len(LEVEL_BOUNDS) + 1


def heatmap_dates(days: int = HEATMAP_DAYS, now: datetime | None = None) -> list[date]:
    """The ``days`` calendar days ending today, oldest first."""
    today = (now or utc_now()).date()
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def _count_by_day(timestamps: Iterable[datetime | None]) -> dict[date, int]:
    counts: dict[date, int] = {}
    for timestamp in timestamps:
        if timestamp is None:
            continue
        day = timestamp.date()
        counts[day] = counts.get(day, 0) + 1
    return counts


def calculate_member_heatmap(
    member: Member,
    tasks: Iterable[Task],
    pull_requests: Iterable[PullRequest],
    commits: Iterable[Commit],
    resolver: MemberResolver | None = None,
    days: int = HEATMAP_DAYS,
    now: datetime | None = None,
) -> MemberHeatmap:
    """
    Daily activity cells for one member.

    Tasks count on the day they closed, pull requests on the day they were
    opened, commits on their commit date. Levels use the unrounded weighted
    value; the stored ``activity`` is rounded half up.
    """
    resolver = resolver or MemberResolver([member])
    commits_by_day = _count_by_day(
        commit.timestamp for commit in commits_for_member(commits, member, resolver)
    )
    prs_by_day = _count_by_day(
        pr.created_at for pr in pull_requests_for_member(pull_requests, member, resolver)
    )
    tasks_by_day = _count_by_day(
        task.closed_at for task in tasks_for_member(tasks, member, resolver)
    )

    cells = []
    for day in heatmap_dates(days, now):
        commit_count = commits_by_day.get(day, 0)
        pr_count = prs_by_day.get(day, 0)
        task_count = tasks_by_day.get(day, 0)
        weighted = (
            commit_count * ACTIVITY_WEIGHTS["commits"]
            + pr_count * ACTIVITY_WEIGHTS["pull_requests"]
            + task_count * ACTIVITY_WEIGHTS["tasks"]
        )
        cells.append(
            HeatmapDay(
                day=day,
                commits=commit_count,
                pull_requests=pr_count,
                tasks=task_count,
                activity=round_half_up(weighted),
                level=activity_level(weighted),
            )
        )

    total = sum(cell.activity for cell in cells)
    return MemberHeatmap(
        member=member,
        days=tuple(cells),
        total_activity=total,
        average_activity=round_half_up(total / days) if days > 0 else 0,
    )


def summarize_heatmap(rows: Iterable[MemberHeatmap]) -> HeatmapSummary:
    """Team totals: summed activity, mean of member daily averages, active members."""
    rows = list(rows)
    if not rows:
        return HeatmapSummary()
    return HeatmapSummary(
        total_activity=sum(row.total_activity for row in rows),
        team_average=round_half_up(sum(row.average_activity for row in rows) / len(rows)),
        active_members=sum(1 for row in rows if row.average_activity > 0),
    )


def calculate_team_heatmap(
    tasks: Iterable[Task],
    pull_requests: Iterable[PullRequest],
    commits: Iterable[Commit],
    members: Iterable[Member] | None = None,
    days: int = HEATMAP_DAYS,
    now: datetime | None = None,
    verbose: bool = False,
) -> TeamHeatmap:
    """
    Builds the heatmap for the whole team, busiest member first.

    Args:
        tasks: Task snapshot.
        pull_requests: PR snapshot.
        commits: Commit snapshot.
        members: Team roster; discovered from the data when empty.
        days: Number of calendar days, ending today.
        now: Reference time.
        verbose: Report unresolved identities.
    """
    now = now or utc_now()
    tasks = list(tasks)
    pull_requests = list(pull_requests)
    commits = list(commits)

    roster = list(members or []) or discover_members(tasks, pull_requests, commits)
    resolver = MemberResolver(roster, verbose=verbose)
    rows = [
        calculate_member_heatmap(member, tasks, pull_requests, commits, resolver, days, now)
        for member in roster
    ]
    rows.sort(key=lambda row: row.total_activity, reverse=True)

    dates = heatmap_dates(days, now)
    today = now.date()
    return TeamHeatmap(
        start=dates[0] if dates else today,
        end=today,
        members=tuple(rows),
        summary=summarize_heatmap(rows),
    )
