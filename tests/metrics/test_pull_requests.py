"""
Tests for pull request metrics.
"""

from datetime import datetime, timedelta, timezone

from pulse_tracker.metrics.pull_requests import (
    calculate_average_pr_size,
    calculate_code_review_stats,
    calculate_pr_metrics,
    time_to_first_review_hours,
)
from pulse_tracker.models import PullRequest, Review

CREATED = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def _pr(pr_id, author="alice", state="open", merged_after=None, review_hours=(), **kwargs):
    merged_at = CREATED + timedelta(days=merged_after) if merged_after is not None else None
    return PullRequest(
        id=pr_id,
        author=author,
        created_at=CREATED,
        state=state,
        merged_at=merged_at,
        reviews=tuple(Review(CREATED + timedelta(hours=h)) for h in review_hours),
        **kwargs,
    )


class TestPullRequestMetrics:
    """Test calculate_pr_metrics."""

    def test_single_open_pr_without_reviews(self):
        """One open, unreviewed PR yields zero averages."""
        result = calculate_pr_metrics([_pr("1")])
        assert result.total == 1
        assert result.open == 1
        assert result.merged == 0
        assert result.average_time_to_first_review == 0
        assert result.average_time_to_merge == 0

    def test_state_partition(self):
        """Closed PRs split into merged and closed-unmerged."""
        prs = [
            _pr("1", state="open"),
            _pr("2", state="closed", merged_after=2),
            _pr("3", state="closed"),
        ]
        result = calculate_pr_metrics(prs)
        assert (result.total, result.open, result.merged, result.closed) == (3, 1, 1, 1)

    def test_average_time_to_merge_over_merged_only(self):
        """Unmerged PRs do not dilute the merge average."""
        prs = [
            _pr("1", state="closed", merged_after=2),
            _pr("2", state="closed", merged_after=4),
            _pr("3", state="open"),
        ]
        assert calculate_pr_metrics(prs).average_time_to_merge == 3

    def test_first_review_uses_earliest_review(self):
        """Time to first review is measured to the earliest review."""
        pr = _pr("1", review_hours=(10, 2, 6))
        assert time_to_first_review_hours(pr) == 2

    def test_average_time_to_first_review_over_reviewed_only(self):
        """Unreviewed PRs do not dilute the review average."""
        prs = [_pr("1", review_hours=(4,)), _pr("2", review_hours=(8,)), _pr("3")]
        assert calculate_pr_metrics(prs).average_time_to_first_review == 6

    def test_by_author_breakdown(self):
        """The same shape is computed per author."""
        prs = [
            _pr("1", author="alice", state="closed", merged_after=1),
            _pr("2", author="alice"),
            _pr("3", author="bob"),
        ]
        result = calculate_pr_metrics(prs)
        assert set(result.by_author) == {"alice", "bob"}
        assert result.by_author["alice"].total == 2
        assert result.by_author["alice"].merged == 1
        assert result.by_author["bob"].open == 1

    def test_empty(self):
        """No PRs gives an all-zero result."""
        result = calculate_pr_metrics([])
        assert result.total == 0
        assert result.by_author == {}


class TestPullRequestExtras:
    """Test PR size and review statistics."""

    def test_average_pr_size(self):
        """Average size is rounded half up over sized PRs."""
        prs = [
            _pr("1", additions=10, deletions=5),
            _pr("2", additions=20, deletions=10),
            _pr("3"),
        ]
        assert calculate_average_pr_size(prs) == 23

    def test_average_pr_size_without_data(self):
        assert calculate_average_pr_size([_pr("1")]) == 0

    def test_code_review_stats(self):
        """Coverage is the percentage of PRs with a review."""
        prs = [
            _pr("1", review_hours=(2, 3), comment_count=4),
            _pr("2", comment_count=2),
        ]
        stats = calculate_code_review_stats(prs)
        assert stats.total_reviews == 2
        assert stats.average_review_time_hours == 2
        assert stats.average_comments_per_pr == 3
        assert stats.review_coverage == 50
