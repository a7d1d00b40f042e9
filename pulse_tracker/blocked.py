"""
Blocked-Task Advisor.

Turns blocked tasks into a prioritized worklist with suggested next actions.
"""

import math
from datetime import datetime
from typing import Iterable, NamedTuple

from pulse_tracker.alerts import AlertSink, format_follow_up_message, format_review_request
from pulse_tracker.metrics.base import (
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
    round_half_up,
    status_text,
)
from pulse_tracker.metrics.blockers import blocked_tasks
from pulse_tracker.models import Task, utc_now

PRIORITY_ORDER = {"critical": 3, "high": 2, "medium": 1, "low": 0}

# Hours blocked before a ticket escalates
CRITICAL_HOURS = 48
HIGH_HOURS = 24
FOLLOW_UP_HOURS = 48
# Days without an update before reassignment is suggested
STALE_DAYS = 3


class Suggestion(NamedTuple):
    type: str
    action: str
    description: str
    priority: str


class BlockedTicket(NamedTuple):
    task: Task
    blocked_since: datetime
    hours_blocked: int
    days_since_update: int
    priority_level: str
    assignee_name: str
    suggestions: list[Suggestion]

    @property
    def needs_follow_up(self) -> bool:
        return self.hours_blocked >= FOLLOW_UP_HOURS


class BlockerStats(NamedTuple):
    total: int
    critical: int
    high: int
    needs_follow_up: int
    avg_blocked_hours: int


class AssigneeBlockers(NamedTuple):
    assignee: str
    count: int
    total_hours: int
    critical: int
    avg_hours: int
    tickets: list[BlockedTicket]


def priority_for(hours_blocked: int) -> str:
    if hours_blocked > CRITICAL_HOURS:
        return "critical"
    if hours_blocked > HIGH_HOURS:
        return "high"
    return "medium"


def build_suggestions(task: Task, hours_blocked: int, days_since_update: int) -> list[Suggestion]:
    """
    Suggested actions for one blocked task.

    Rules are independent and applied in a fixed order; when none applies a
    generic status-update suggestion is returned, so the list is never empty.
    """
    status = status_text(task)
    suggestions = []

    if hours_blocked > CRITICAL_HOURS:
        suggestions.append(
            Suggestion(
                "urgent",
                "Send follow-up reminder",
                "Task has been blocked for over 48 hours",
                "high",
            )
        )
    if not task.assignees:
        suggestions.append(
            Suggestion(
                "assignment",
                "Assign to team member",
                "Task needs an owner to move forward",
                "high",
            )
        )
    if "waiting" in status:
        suggestions.append(
            Suggestion(
                "communication",
                "Comment asking for update",
                "Check with dependencies or stakeholders",
                "medium",
            )
        )
    if "review" in status:
        suggestions.append(
            Suggestion(
                "review",
                "Tag reviewer on GitHub/Slack",
                "Speed up the review process",
                "medium",
            )
        )
    if days_since_update > STALE_DAYS:
        suggestions.append(
            Suggestion(
                "reassignment",
                "Consider reassigning",
                f"No updates for {days_since_update} days",
                "medium",
            )
        )

    if not suggestions:
        suggestions.append(
            Suggestion(
                "status_update",
                "Update task status",
                "Change status if work is already in progress",
                "low",
            )
        )
    return suggestions


def advise(task: Task, now: datetime | None = None) -> BlockedTicket:
    """Build the advisor entry for one task already classified as blocked."""
    now = now or utc_now()
    blocked_since = task.updated_at or task.created_at
    hours_blocked = math.floor((now - blocked_since).total_seconds() / SECONDS_PER_HOUR)
    days_since_update = (
        math.floor((now - task.updated_at).total_seconds() / SECONDS_PER_DAY)
        if task.updated_at is not None
        else 0
    )
    return BlockedTicket(
        task=task,
        blocked_since=blocked_since,
        hours_blocked=hours_blocked,
        days_since_update=days_since_update,
        priority_level=priority_for(hours_blocked),
        assignee_name=task.first_assignee_name,
        suggestions=build_suggestions(task, hours_blocked, days_since_update),
    )


def sort_tickets(tickets: Iterable[BlockedTicket]) -> list[BlockedTicket]:
    """Highest priority tier first, then longest blocked."""
    return sorted(
        tickets,
        key=lambda t: (PRIORITY_ORDER.get(t.priority_level, 0), t.hours_blocked),
        reverse=True,
    )


def get_blocked_tickets(tasks: Iterable[Task], now: datetime | None = None) -> list[BlockedTicket]:
    """
    Classify, advise and order every blocked task.

    Args:
        tasks: Task snapshot.
        now: Reference time.

    Returns:
        Sorted list of BlockedTicket entries.
    """
    now = now or utc_now()
    return sort_tickets(advise(task, now) for task in blocked_tasks(tasks))


def get_blocker_stats(tickets: list[BlockedTicket]) -> BlockerStats:
    total = len(tickets)
    return BlockerStats(
        total=total,
        critical=sum(1 for t in tickets if t.priority_level == "critical"),
        high=sum(1 for t in tickets if t.priority_level == "high"),
        needs_follow_up=sum(1 for t in tickets if t.needs_follow_up),
        avg_blocked_hours=(
            round_half_up(sum(t.hours_blocked for t in tickets) / total) if total else 0
        ),
    )


def get_team_blocker_summary(tickets: list[BlockedTicket]) -> list[AssigneeBlockers]:
    """Blocked tickets grouped by assignee, most critical first, then most tickets."""
    grouped: dict[str, list[BlockedTicket]] = {}
    for ticket in tickets:
        grouped.setdefault(ticket.assignee_name, []).append(ticket)

    summary = []
    for assignee, items in grouped.items():
        total_hours = sum(t.hours_blocked for t in items)
        summary.append(
            AssigneeBlockers(
                assignee=assignee,
                count=len(items),
                total_hours=total_hours,
                critical=sum(1 for t in items if t.priority_level == "critical"),
                avg_hours=round_half_up(total_hours / len(items)),
                tickets=items,
            )
        )
    return sorted(summary, key=lambda s: (s.critical, s.count), reverse=True)


async def execute_action(
    ticket: BlockedTicket, suggestion: Suggestion, sink: AlertSink | None
) -> bool:
    """
    Carry out a suggestion that maps to a chat message.

    Follow-up and stakeholder suggestions send a follow-up reminder, review
    suggestions send a review request. Other suggestion types need a human
    and report success without sending anything.
    """
    if suggestion.type in ("urgent", "communication"):
        if sink is None:
            return False
        return await sink.send(format_follow_up_message(ticket))
    if suggestion.type == "review":
        if sink is None:
            return False
        return await sink.send(format_review_request(ticket))
    return True
