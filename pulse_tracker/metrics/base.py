"""
Shared vocabularies and numeric helpers for metric calculators.
"""

import math
from datetime import datetime

from pulse_tracker.models import Task

# Status labels (case-insensitive, exact) that count as finished work
COMPLETION_STATUSES = (
    "completed",
    "done",
    "closed",
    "deployed",
    "finished",
    "accepted",
)

# Substrings that mark a task as blocked
BLOCKED_STATUS_KEYWORDS = ("blocked", "waiting", "pending")
BLOCKED_COMMENT_KEYWORDS = ("blocked", "waiting", "pending", "stuck")

# Substrings that mark a task as actively being worked on
IN_PROGRESS_KEYWORDS = ("progress", "doing", "active", "started")

SECONDS_PER_HOUR = 60 * 60
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR


def status_text(task: Task) -> str:
    return (task.status or "").strip().lower()


def is_completed(task: Task) -> bool:
    return status_text(task) in COMPLETION_STATUSES


def is_open(task: Task) -> bool:
    """A task without a status is treated as open."""
    return not is_completed(task)


def is_in_progress(task: Task) -> bool:
    status = status_text(task)
    return bool(status) and any(keyword in status for keyword in IN_PROGRESS_KEYWORDS)


def has_blocked_status(task: Task) -> bool:
    status = status_text(task)
    return any(keyword in status for keyword in BLOCKED_STATUS_KEYWORDS)


def has_blocked_comment(task: Task) -> bool:
    # Plain substring match; "no longer blocked" still counts.
    for comment in task.comments:
        text = (comment.text or "").lower()
        if any(keyword in text for keyword in BLOCKED_COMMENT_KEYWORDS):
            return True
    return False


def is_blocked(task: Task) -> bool:
    return has_blocked_status(task) or has_blocked_comment(task)


def story_points(task: Task) -> float:
    """Story points for velocity; absent or non-positive points count as 1."""
    points = task.story_points
    if points is None or points <= 0:
        return 1
    return points


def elapsed_hours(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def elapsed_days(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_DAY


def mean(values: list[float]) -> float:
    """Arithmetic mean, 0 for an empty list."""
    return sum(values) / len(values) if values else 0


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


def normalize(raw_value: float, ceiling: float) -> float:
    """Scale a raw value against a fixed ceiling into [0, 1]."""
    if ceiling <= 0:
        return 1.0
    return clamp(raw_value / ceiling)


def inverse_normalize(target: float, actual: float) -> float:
    """Score where smaller actual values are better; no data scores 1."""
    if actual <= 0:
        return 1.0
    return clamp(target / actual)


def ratio(numerator: float, denominator: float, default: float) -> float:
    return numerator / denominator if denominator > 0 else default


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def to_percent(weighted: float) -> int:
    """Scale a [0, 1] weighted sum to a clamped integer 0-100 score."""
    return int(clamp(round_half_up(weighted * 100), 0, 100))
