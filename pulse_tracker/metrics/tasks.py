"""Task list filtering."""

from typing import Iterable

from pulse_tracker.models import Task

ALL = "all"


def _is_wildcard(value: str | None) -> bool:
    return not value or value.lower() == ALL


def filter_tasks(
    tasks: Iterable[Task],
    status: str | None = None,
    assignee: str | None = None,
    search: str | None = None,
) -> list[Task]:
    """
    Narrow a task list the way a task browser does.

    Args:
        tasks: Task snapshot.
        status: Exact status label, case-insensitive ("all" or None for any).
        assignee: Substring of any assignee's username, case-insensitive.
            Unassigned tasks never match.
        search: Substring of the task name, case-insensitive.

    Returns:
        Matching tasks in their original order.
    """
    matched = []
    for task in tasks:
        if not _is_wildcard(status) and (task.status or "").lower() != status.lower():
            continue
        if not _is_wildcard(assignee):
            needle = assignee.lower()
            if not any(needle in (a.username or "").lower() for a in task.assignees):
                continue
        if search and search.lower() not in task.name.lower():
            continue
        matched.append(task)
    return matched


def task_statuses(tasks: Iterable[Task]) -> list[str]:
    """Distinct non-empty status labels, sorted."""
    return sorted({task.status for task in tasks if task.status})


def task_assignees(tasks: Iterable[Task]) -> list[str]:
    """Distinct assignee usernames, sorted."""
    return sorted({a.username for task in tasks for a in task.assignees if a.username})
