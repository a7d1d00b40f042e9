"""Blocker census metric."""

from typing import Iterable, NamedTuple

from pulse_tracker.metrics.base import is_blocked
from pulse_tracker.models import Task


class BlockerMetrics(NamedTuple):
    """Blocked-task counts with breakdowns."""

    total_blocked: int
    by_status: dict[str, int]
    by_assignee: dict[str, int]


def blocked_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Tasks whose status or comments say they cannot proceed."""
    return [task for task in tasks if is_blocked(task)]


def calculate_blocker_metrics(tasks: Iterable[Task]) -> BlockerMetrics:
    """
    Counts blocked tasks, grouped by status label and by first assignee.

    Tasks without a status are grouped under "No Status", tasks without an
    assignee under "Unassigned".
    """
    blocked = blocked_tasks(tasks)

    by_status: dict[str, int] = {}
    by_assignee: dict[str, int] = {}
    for task in blocked:
        status = task.status or "No Status"
        by_status[status] = by_status.get(status, 0) + 1
        assignee = task.first_assignee_name
        by_assignee[assignee] = by_assignee.get(assignee, 0) + 1

    return BlockerMetrics(len(blocked), by_status, by_assignee)
