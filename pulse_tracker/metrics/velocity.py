"""Task velocity metric."""

from datetime import datetime, timedelta
from typing import Iterable, NamedTuple

from pulse_tracker.metrics.base import is_completed, story_points
from pulse_tracker.models import Task, utc_now


class VelocityMetrics(NamedTuple):
    """Completed work inside a lookback window."""

    total_tasks: int
    total_points: float
    average_per_day: float
    average_per_week: float


def completed_tasks(
    tasks: Iterable[Task], days: int, now: datetime | None = None
) -> list[Task]:
    """
    Tasks in a completion status that closed (or were last updated) within
    the last ``days`` days.
    """
    now = now or utc_now()
    cutoff = now - timedelta(days=days)

    completed = []
    for task in tasks:
        if not is_completed(task):
            continue
        task_date = task.closed_at or task.updated_at
        if task_date is not None and task_date >= cutoff:
            completed.append(task)
    return completed


def calculate_velocity(
    tasks: Iterable[Task], days: int = 14, now: datetime | None = None
) -> VelocityMetrics:
    """
    Calculates velocity over a lookback window.

    Story points default to 1 when a task carries none. Averages are taken
    over the full window length, not over days that saw activity.

    Args:
        tasks: Task snapshot.
        days: Lookback window in days.
        now: Reference time (defaults to the current UTC time).

    Returns:
        VelocityMetrics with totals and per-day / per-week averages.
    """
    finished = completed_tasks(tasks, days, now)
    total_points = sum(story_points(task) for task in finished)

    if days <= 0:
        return VelocityMetrics(len(finished), total_points, 0, 0)

    average_per_day = total_points / days
    return VelocityMetrics(
        total_tasks=len(finished),
        total_points=total_points,
        average_per_day=average_per_day,
        average_per_week=average_per_day * 7,
    )
