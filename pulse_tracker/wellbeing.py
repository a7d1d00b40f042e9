"""
Burnout and happiness scores for individual members.

Burnout treats high raw activity as a risk signal, while the productivity
score treats the same activity as output. A busy member can therefore score
high on both at once; the two scores are kept independent on purpose.
"""

import math
from datetime import datetime
from typing import Any, Iterable, NamedTuple

from pulse_tracker.metrics.base import clamp, round_half_up
from pulse_tracker.metrics.commits import ActivityWindow, activity_for_date_range
from pulse_tracker.metrics.members import (
    MemberResolver,
    calculate_task_metrics,
    commits_for_member,
    pull_requests_for_member,
    tasks_for_member,
)
from pulse_tracker.models import Commit, Member, PullRequest, Task

# Recent-activity window used by both scores
ACTIVITY_WINDOW_DAYS = 7


class Factor(NamedTuple):
    """One contribution to a score."""

    type: str
    value: Any
    impact: int
    description: str = ""


class WellbeingInputs(NamedTuple):
    """Raw per-member numbers feeding burnout and happiness."""

    open_tasks: int = 0
    completed_tasks: int = 0
    completion_rate: float = 0
    blocked_tasks: int = 0
    recent_activity: ActivityWindow = ActivityWindow(0, 0)
    ongoing_prs: int = 0
    merged_prs: int = 0


class BurnoutResult(NamedTuple):
    score: int
    level: str  # "low", "moderate", "high", "critical"
    factors: list[Factor]
    metrics: dict[str, float]


class HappinessResult(NamedTuple):
    score: int
    level: str  # "unhappy", "concerned", "neutral", "happy", "very_happy"
    emoji: str
    factors: list[Factor]
    burnout_level: str | None = None


HAPPINESS_EMOJI = {
    "very_happy": "😄",
    "happy": "😊",
    "neutral": "😐",
    "concerned": "😕",
    "unhappy": "😞",
}


def burnout_level(score: float) -> str:
    if score >= 70:
        return "critical"
    if score >= 50:
        return "high"
    if score >= 30:
        return "moderate"
    return "low"


def happiness_level(score: float) -> str:
    if score >= 80:
        return "very_happy"
    if score >= 65:
        return "happy"
    if score >= 45:
        return "neutral"
    if score >= 30:
        return "concerned"
    return "unhappy"


def gather_inputs(
    member: Member,
    tasks: Iterable[Task],
    pull_requests: Iterable[PullRequest],
    commits: Iterable[Commit],
    resolver: MemberResolver | None = None,
    now: datetime | None = None,
) -> WellbeingInputs:
    """Collect the member-scoped numbers both scores are built from."""
    resolver = resolver or MemberResolver([member])
    member_tasks = tasks_for_member(tasks, member, resolver)
    member_prs = pull_requests_for_member(pull_requests, member, resolver)
    member_commits = commits_for_member(commits, member, resolver)
    task_metrics = calculate_task_metrics(member_tasks, ACTIVITY_WINDOW_DAYS, now)

    return WellbeingInputs(
        open_tasks=task_metrics.open,
        completed_tasks=task_metrics.completed,
        completion_rate=task_metrics.completion_rate,
        blocked_tasks=task_metrics.blocked,
        recent_activity=activity_for_date_range(
            member_commits, member_prs, ACTIVITY_WINDOW_DAYS, now
        ),
        ongoing_prs=sum(1 for pr in member_prs if pr.state == "open"),
        merged_prs=sum(1 for pr in member_prs if pr.state == "closed" and pr.is_merged),
    )


def calculate_burnout(inputs: WellbeingInputs) -> BurnoutResult:
    """
    Calculates a 0-100 burnout risk score.

    Scoring:
    - Open tasks: >15 → 30, >10 → 20, >5 → 10
    - 7-day commits + PRs: >20 → 25, >15 → 20, >10 → 15
    - Open PRs: >5 → 20, >3 → 15
    - Completion rate: <30% → 15, <50% → 10
    - Blocked tasks: 5 per task

    Levels: low <30 ≤ moderate <50 ≤ high <70 ≤ critical
    """
    factors: list[Factor] = []

    open_tasks = inputs.open_tasks
    if open_tasks > 15:
        factors.append(Factor("high_open_tasks", open_tasks, 30))
    elif open_tasks > 10:
        factors.append(Factor("moderate_open_tasks", open_tasks, 20))
    elif open_tasks > 5:
        factors.append(Factor("some_open_tasks", open_tasks, 10))

    total_activity = inputs.recent_activity.total_activity
    if total_activity > 20:
        factors.append(Factor("very_high_activity", total_activity, 25))
    elif total_activity > 15:
        factors.append(Factor("high_activity", total_activity, 20))
    elif total_activity > 10:
        factors.append(Factor("moderate_activity", total_activity, 15))

    ongoing_prs = inputs.ongoing_prs
    if ongoing_prs > 5:
        factors.append(Factor("many_ongoing_prs", ongoing_prs, 20))
    elif ongoing_prs > 3:
        factors.append(Factor("some_ongoing_prs", ongoing_prs, 15))

    completion_rate = inputs.completion_rate
    if completion_rate < 30:
        factors.append(Factor("low_completion_rate", completion_rate, 15))
    elif completion_rate < 50:
        factors.append(Factor("moderate_completion_rate", completion_rate, 10))

    if inputs.blocked_tasks > 0:
        factors.append(Factor("blocked_tasks", inputs.blocked_tasks, inputs.blocked_tasks * 5))

    score = sum(factor.impact for factor in factors)

    return BurnoutResult(
        score=min(score, 100),
        level=burnout_level(score),
        factors=factors,
        metrics={
            "open_tasks": open_tasks,
            "recent_activity": total_activity,
            "ongoing_prs": ongoing_prs,
            "completion_rate": completion_rate,
            "blocked_tasks": inputs.blocked_tasks,
        },
    )


def get_burnout_recommendations(burnout: BurnoutResult) -> list[str]:
    recommendations = []
    if burnout.level in ("critical", "high"):
        recommendations.extend(
            [
                "Consider redistributing some tasks to other team members",
                "Schedule a check-in meeting to discuss workload",
                "Look into blocking issues that might be slowing progress",
            ]
        )
    if burnout.metrics["open_tasks"] > 10:
        recommendations.append("Help prioritize and close out some open tasks")
    if burnout.metrics["ongoing_prs"] > 3:
        recommendations.append("Focus on getting PRs reviewed and merged")
    if burnout.metrics["blocked_tasks"] > 0:
        recommendations.append("Address blocked tasks immediately")
    if burnout.metrics["completion_rate"] < 50:
        recommendations.append("Break down large tasks into smaller, manageable pieces")
    return recommendations


def should_trigger_burnout_alert(burnout: BurnoutResult) -> bool:
    return burnout.level in ("high", "critical")


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count > 1 else ''}"


def calculate_happiness(
    inputs: WellbeingInputs, burnout: BurnoutResult | None
) -> HappinessResult:
    """
    Calculates a 0-100 happiness score from a 70-point baseline.

    Adjustments:
    - minus floor(0.4 × burnout score)
    - plus accomplishments: min(2×commits + 3×PRs + 4×completed tasks, 25)
    - completion rate: >80% +20, >60% +15, >40% +10, <20% −10
    - minus 5 per blocked task
    - plus min(2 × merged PRs, 10)

    Levels: unhappy <30 ≤ concerned <45 ≤ neutral <65 ≤ happy <80 ≤ very_happy
    """
    if burnout is None:
        return HappinessResult(50, "neutral", HAPPINESS_EMOJI["neutral"], [])

    factors: list[Factor] = []
    score = 70

    burnout_impact = math.floor(burnout.score * 0.4)
    score -= burnout_impact
    if burnout_impact > 0:
        factors.append(
            Factor(
                "burnout_impact",
                burnout.score,
                -burnout_impact,
                f"Burnout level: {burnout.level}",
            )
        )

    activity = inputs.recent_activity
    accomplishment = min(
        activity.commits * 2 + activity.pull_requests * 3 + inputs.completed_tasks * 4,
        25,
    )
    score += accomplishment
    if accomplishment > 0:
        factors.append(
            Factor(
                "recent_accomplishments",
                {
                    "commits": activity.commits,
                    "prs": activity.pull_requests,
                    "tasks": inputs.completed_tasks,
                },
                accomplishment,
                "Recent productive activity",
            )
        )

    completion_rate = inputs.completion_rate
    if completion_rate > 80:
        completion_bonus = 20
    elif completion_rate > 60:
        completion_bonus = 15
    elif completion_rate > 40:
        completion_bonus = 10
    elif completion_rate < 20:
        completion_bonus = -10
    else:
        completion_bonus = 0
    score += completion_bonus
    if completion_bonus != 0:
        factors.append(
            Factor(
                "completion_rate",
                completion_rate,
                completion_bonus,
                f"Task completion rate: {round_half_up(completion_rate)}%",
            )
        )

    blocked_penalty = inputs.blocked_tasks * 5
    score -= blocked_penalty
    if blocked_penalty > 0:
        factors.append(
            Factor(
                "blocked_tasks",
                inputs.blocked_tasks,
                -blocked_penalty,
                _plural(inputs.blocked_tasks, "blocked task"),
            )
        )

    merge_bonus = min(inputs.merged_prs * 2, 10)
    score += merge_bonus
    if merge_bonus > 0:
        factors.append(
            Factor(
                "merged_prs",
                inputs.merged_prs,
                merge_bonus,
                _plural(inputs.merged_prs, "merged PR"),
            )
        )

    score = round_half_up(clamp(score, 0, 100))
    level = happiness_level(score)
    return HappinessResult(score, level, HAPPINESS_EMOJI[level], factors, burnout.level)


def get_happiness_insights(happiness: HappinessResult) -> list[str]:
    insights = {
        "very_happy": ["🎉 This teammate is thriving! Great work-life balance."],
        "happy": ["✨ This teammate seems to be doing well overall."],
        "neutral": ["📊 This teammate is maintaining steady progress."],
        "concerned": ["⚠️ This teammate might need some support or check-in."],
        "unhappy": ["🚨 This teammate likely needs immediate attention and support."],
    }[happiness.level]

    negative = [factor for factor in happiness.factors if factor.impact < 0]
    positive = [factor for factor in happiness.factors if factor.impact > 0]
    if negative:
        # Ties go to the later factor.
        main_issue = negative[0]
        for factor in negative[1:]:
            if abs(factor.impact) >= abs(main_issue.impact):
                main_issue = factor
        insights.append(f"Main concern: {main_issue.description}")
    if positive:
        main_strength = positive[0]
        for factor in positive[1:]:
            if factor.impact >= main_strength.impact:
                main_strength = factor
        insights.append(f"Strength: {main_strength.description}")
    return insights


def should_celebrate(happiness: HappinessResult) -> bool:
    if happiness.level == "very_happy":
        return True
    return happiness.level == "happy" and any(
        factor.type == "recent_accomplishments" and factor.impact > 15
        for factor in happiness.factors
    )
