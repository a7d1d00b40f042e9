"""
Tests for the velocity metric.
"""

from datetime import datetime, timedelta, timezone

from pulse_tracker.metrics.velocity import calculate_velocity, completed_tasks
from pulse_tracker.models import Task

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _task(task_id, status, days_ago=1, points=None, closed_days_ago=None):
    return Task(
        id=task_id,
        name=f"Task {task_id}",
        status=status,
        created_at=NOW - timedelta(days=30),
        updated_at=NOW - timedelta(days=days_ago),
        closed_at=(
            NOW - timedelta(days=closed_days_ago) if closed_days_ago is not None else None
        ),
        story_points=points,
    )


class TestVelocityMetric:
    """Test the calculate_velocity metric function."""

    def test_single_done_task_inside_window(self):
        """A done task worth 5 points in a 7 day window."""
        result = calculate_velocity([_task("1", "done", days_ago=2, points=5)], days=7, now=NOW)
        assert result.total_tasks == 1
        assert result.total_points == 5
        assert result.average_per_week == 5

    def test_averages_are_exact(self):
        """averagePerDay is P/D and averagePerWeek is 7P/D."""
        tasks = [
            _task("1", "completed", points=3),
            _task("2", "Done", points=4),
            _task("3", "closed", points=6),
        ]
        result = calculate_velocity(tasks, days=14, now=NOW)
        assert result.total_points == 13
        assert result.average_per_day == 13 / 14
        assert result.average_per_week == 13 / 14 * 7

    def test_missing_points_default_to_one(self):
        """Tasks without story points count as one point."""
        tasks = [_task("1", "done"), _task("2", "deployed", points=0)]
        result = calculate_velocity(tasks, days=7, now=NOW)
        assert result.total_points == 2

    def test_tasks_outside_window_are_ignored(self):
        """Only tasks closed inside the window count."""
        tasks = [
            _task("1", "done", days_ago=3, points=2),
            _task("2", "done", days_ago=10, points=8),
        ]
        result = calculate_velocity(tasks, days=7, now=NOW)
        assert result.total_tasks == 1
        assert result.total_points == 2

    def test_closed_at_takes_priority_over_updated_at(self):
        """A recently edited task that closed long ago is outside the window."""
        task = _task("1", "done", days_ago=1, closed_days_ago=20)
        assert calculate_velocity([task], days=7, now=NOW).total_tasks == 0

    def test_non_completion_statuses(self):
        """Statuses outside the completion vocabulary never count."""
        tasks = [
            _task("1", "in progress"),
            _task("2", "complete"),
            _task("3", "to do"),
            _task("4", ""),
        ]
        assert completed_tasks(tasks, 7, NOW) == []

    def test_empty_task_list(self):
        """No tasks gives zero velocity."""
        result = calculate_velocity([], days=7, now=NOW)
        assert result.total_tasks == 0
        assert result.average_per_day == 0
        assert result.average_per_week == 0
