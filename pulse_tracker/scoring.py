"""
Score Composer.

Combines calculator outputs into composite 0-100 scores. Every sub-score is
normalized to [0, 1] against a fixed ceiling before weighting, and every
composite is clamped to [0, 100] after scaling. Missing data scores as
healthy ("no PRs means no problem"), never as 0.
"""

from datetime import datetime, timedelta
from functools import lru_cache
from typing import Iterable, NamedTuple

from pulse_tracker.metrics.base import (
    inverse_normalize,
    is_completed,
    is_in_progress,
    normalize,
    ratio,
    to_percent,
)
from pulse_tracker.metrics.blockers import BlockerMetrics, calculate_blocker_metrics
from pulse_tracker.metrics.commits import CommitMetrics, calculate_commit_metrics
from pulse_tracker.metrics.members import (
    MemberMetrics,
    MemberResolver,
    MemberTaskMetrics,
    calculate_member_metrics,
    discover_members,
)
from pulse_tracker.metrics.pull_requests import (
    CodeReviewStats,
    PullRequestMetrics,
    calculate_average_pr_size,
    calculate_code_review_stats,
    calculate_pr_metrics,
)
from pulse_tracker.metrics.velocity import VelocityMetrics, calculate_velocity
from pulse_tracker.models import (
    Commit,
    DataSnapshot,
    Member,
    PullRequest,
    Score,
    Task,
    utc_now,
)

# Normalization ceilings (raw value at which a sub-score saturates)
CEILINGS = {
    "health_velocity": 20,  # story points per week
    "health_blockers": 10,
    "health_review_hours": 48,
    "productivity_velocity": 30,  # story points per week
    "productivity_merged_prs": 10,
    "productivity_commits": 50,
    "quality_review_hours": 24,
    "quality_blockers": 5,
    "member_tasks": 5,
    "member_merged_prs": 5,
    "member_commits": 20,
}

WEIGHTS = {
    "health": {
        "velocity": 0.3,
        "blockers": 0.3,
        "pr_merge_rate": 0.2,
        "pr_review": 0.2,
    },
    "productivity": {
        "velocity": 0.5,
        "pr_throughput": 0.3,
        "commits": 0.2,
    },
    "quality": {
        "pr_merge_rate": 0.4,
        "review_time": 0.4,
        "blockers": 0.2,
    },
    "member_productivity": {
        "task_completion": 0.5,
        "pr_throughput": 0.3,
        "commits": 0.2,
    },
    "member_health": {
        "unblocked": 0.6,
        "pr_merge_rate": 0.4,
    },
}


def compose_score(name: str, components: dict[str, float], weights: dict[str, float]) -> Score:
    """
    Weighted sum of normalized components, scaled to 0-100 and clamped.

    Args:
        name: Score name.
        components: Sub-scores in [0, 1], keyed like ``weights``.
        weights: Component weights.

    Returns:
        Score whose ``inputs`` hold the normalized components.
    """
    weighted = sum(components[key] * weight for key, weight in weights.items())
    return Score(name, to_percent(weighted), dict(components))


def pr_merge_rate(pr_metrics: PullRequestMetrics) -> float:
    return ratio(pr_metrics.merged, pr_metrics.total, 1.0)


def team_health_score(
    velocity_per_week: float, blocker_count: int, pr_metrics: PullRequestMetrics
) -> Score:
    components = {
        "velocity": normalize(velocity_per_week, CEILINGS["health_velocity"]),
        "blockers": 1 - normalize(blocker_count, CEILINGS["health_blockers"]),
        "pr_merge_rate": pr_merge_rate(pr_metrics),
        "pr_review": inverse_normalize(
            CEILINGS["health_review_hours"], pr_metrics.average_time_to_first_review
        ),
    }
    return compose_score("health", components, WEIGHTS["health"])


def productivity_score(
    velocity_per_week: float,
    pr_metrics: PullRequestMetrics,
    commit_metrics: CommitMetrics,
) -> Score:
    components = {
        "velocity": normalize(velocity_per_week, CEILINGS["productivity_velocity"]),
        "pr_throughput": normalize(pr_metrics.merged, CEILINGS["productivity_merged_prs"]),
        "commits": normalize(commit_metrics.total, CEILINGS["productivity_commits"]),
    }
    return compose_score("productivity", components, WEIGHTS["productivity"])


def quality_score(pr_metrics: PullRequestMetrics, blocker_count: int) -> Score:
    components = {
        "pr_merge_rate": pr_merge_rate(pr_metrics),
        "review_time": inverse_normalize(
            CEILINGS["quality_review_hours"], pr_metrics.average_time_to_first_review
        ),
        "blockers": 1 - normalize(blocker_count, CEILINGS["quality_blockers"]),
    }
    return compose_score("quality", components, WEIGHTS["quality"])


def member_productivity_score(
    tasks: MemberTaskMetrics,
    pr_metrics: PullRequestMetrics,
    commit_metrics: CommitMetrics,
) -> Score:
    # Fewer than five tasks can never reach a full completion score.
    task_completion = (
        normalize(tasks.completed, max(CEILINGS["member_tasks"], tasks.total))
        if tasks.total > 0
        else 0.0
    )
    components = {
        "task_completion": task_completion,
        "pr_throughput": normalize(pr_metrics.merged, CEILINGS["member_merged_prs"]),
        "commits": normalize(commit_metrics.total, CEILINGS["member_commits"]),
    }
    return compose_score("member_productivity", components, WEIGHTS["member_productivity"])


def member_health_score(tasks: MemberTaskMetrics, pr_metrics: PullRequestMetrics) -> Score:
    # Blocked work is weighed against completed work; nothing completed is healthy.
    unblocked = (
        max(0.0, 1 - tasks.blocked / tasks.completed) if tasks.completed > 0 else 1.0
    )
    components = {
        "unblocked": unblocked,
        "pr_merge_rate": pr_merge_rate(pr_metrics),
    }
    return compose_score("member_health", components, WEIGHTS["member_health"])


# --- Team report ---


class TimePeriod(NamedTuple):
    start: datetime
    end: datetime
    days: int


class TaskSummary(NamedTuple):
    total: int
    completed: int
    in_progress: int
    blocked: int
    velocity: VelocityMetrics
    blockers: BlockerMetrics


class CodeSummary(NamedTuple):
    pull_requests: PullRequestMetrics
    commits: CommitMetrics
    average_pr_size: int
    code_review_stats: CodeReviewStats


class MemberReport(NamedTuple):
    metrics: MemberMetrics
    productivity: Score
    health: Score


class TeamScores(NamedTuple):
    health: Score
    productivity: Score
    quality: Score


class TeamReport(NamedTuple):
    """Everything the presentation layer renders for one refresh."""

    time_period: TimePeriod
    tasks: TaskSummary
    code: CodeSummary
    members: tuple[MemberReport, ...]
    scores: TeamScores
    errors: tuple[str, ...] = ()


def calculate_team_productivity(
    tasks: Iterable[Task],
    pull_requests: Iterable[PullRequest],
    commits: Iterable[Commit],
    days: int = 30,
    members: Iterable[Member] | None = None,
    now: datetime | None = None,
    verbose: bool = False,
) -> TeamReport:
    """
    Computes the full team report from raw records.

    Args:
        tasks: Task snapshot.
        pull_requests: PR snapshot.
        commits: Commit snapshot.
        days: Lookback window for velocity and member completions.
        members: Team roster; discovered from the data when empty.
        now: Reference time.
        verbose: Report unresolved identities.

    Returns:
        TeamReport with task, code, member and score sections.
    """
    now = now or utc_now()
    tasks = list(tasks)
    pull_requests = list(pull_requests)
    commits = list(commits)

    velocity = calculate_velocity(tasks, days, now)
    blockers = calculate_blocker_metrics(tasks)
    pr_metrics = calculate_pr_metrics(pull_requests)
    commit_metrics = calculate_commit_metrics(commits)

    roster = list(members or []) or discover_members(tasks, pull_requests, commits)
    resolver = MemberResolver(roster, verbose=verbose)
    member_reports = []
    for member in roster:
        metrics = calculate_member_metrics(
            member, tasks, pull_requests, commits, resolver, days, now
        )
        member_reports.append(
            MemberReport(
                metrics=metrics,
                productivity=member_productivity_score(
                    metrics.tasks, metrics.pull_requests, metrics.commits
                ),
                health=member_health_score(metrics.tasks, metrics.pull_requests),
            )
        )

    return TeamReport(
        time_period=TimePeriod(now - timedelta(days=days), now, days),
        tasks=TaskSummary(
            total=len(tasks),
            completed=sum(1 for task in tasks if is_completed(task)),
            in_progress=sum(1 for task in tasks if is_in_progress(task)),
            blocked=blockers.total_blocked,
            velocity=velocity,
            blockers=blockers,
        ),
        code=CodeSummary(
            pull_requests=pr_metrics,
            commits=commit_metrics,
            average_pr_size=calculate_average_pr_size(pull_requests),
            code_review_stats=calculate_code_review_stats(pull_requests),
        ),
        members=tuple(member_reports),
        scores=TeamScores(
            health=team_health_score(
                velocity.average_per_week, blockers.total_blocked, pr_metrics
            ),
            productivity=productivity_score(
                velocity.average_per_week, pr_metrics, commit_metrics
            ),
            quality=quality_score(pr_metrics, blockers.total_blocked),
        ),
    )


def refresh_report(snapshot: DataSnapshot, days: int = 30) -> TeamReport:
    """
    Recompute the team report on demand.

    Memoized on the (immutable) snapshot, so re-rendering the same data does
    not recompute anything. Callers share the returned report and must treat
    it as read-only, including the count dicts inside it. A snapshot without
    ``fetched_at`` is computed against the current time and never cached.
    """
    if snapshot.fetched_at is None:
        return _build_report(snapshot, days)
    return _cached_report(snapshot, days)


@lru_cache(maxsize=8)
def _cached_report(snapshot: DataSnapshot, days: int) -> TeamReport:
    return _build_report(snapshot, days)


def _build_report(snapshot: DataSnapshot, days: int) -> TeamReport:
    report = calculate_team_productivity(
        snapshot.tasks,
        snapshot.pull_requests,
        snapshot.commits,
        days=days,
        members=snapshot.members,
        now=snapshot.fetched_at,
    )
    return report._replace(errors=snapshot.errors)

