"""
Metric calculators.

Pure functions that fold raw task, pull request, and commit records into
per-entity counts. None of them raise on missing or empty data.
"""

from pulse_tracker.metrics.blockers import (
    BlockerMetrics,
    blocked_tasks,
    calculate_blocker_metrics,
)
from pulse_tracker.metrics.commits import (
    ActivityWindow,
    CommitMetrics,
    activity_for_date_range,
    calculate_commit_metrics,
)
from pulse_tracker.metrics.heatmap import (
    MemberHeatmap,
    TeamHeatmap,
    activity_level,
    calculate_member_heatmap,
    calculate_team_heatmap,
)
from pulse_tracker.metrics.members import (
    MemberMetrics,
    MemberResolver,
    MemberTaskMetrics,
    calculate_member_metrics,
    calculate_task_metrics,
    discover_members,
)
from pulse_tracker.metrics.pull_requests import (
    CodeReviewStats,
    PullRequestMetrics,
    calculate_average_pr_size,
    calculate_code_review_stats,
    calculate_pr_metrics,
)
from pulse_tracker.metrics.tasks import filter_tasks, task_assignees, task_statuses
from pulse_tracker.metrics.velocity import (
    VelocityMetrics,
    calculate_velocity,
    completed_tasks,
)

__all__ = [
    "ActivityWindow",
    "BlockerMetrics",
    "CodeReviewStats",
    "CommitMetrics",
    "MemberHeatmap",
    "MemberMetrics",
    "MemberResolver",
    "MemberTaskMetrics",
    "PullRequestMetrics",
    "TeamHeatmap",
    "VelocityMetrics",
    "activity_for_date_range",
    "activity_level",
    "blocked_tasks",
    "calculate_average_pr_size",
    "calculate_blocker_metrics",
    "calculate_code_review_stats",
    "calculate_commit_metrics",
    "calculate_member_heatmap",
    "calculate_member_metrics",
    "calculate_pr_metrics",
    "calculate_task_metrics",
    "calculate_team_heatmap",
    "calculate_velocity",
    "completed_tasks",
    "discover_members",
    "filter_tasks",
    "task_assignees",
    "task_statuses",
]
