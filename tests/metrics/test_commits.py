"""
Tests for commit metrics and recent activity.
"""

from datetime import datetime, timedelta, timezone

from pulse_tracker.metrics.commits import activity_for_date_range, calculate_commit_metrics
from pulse_tracker.models import Commit, PullRequest

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


class TestCommitMetrics:
    """Test calculate_commit_metrics."""

    def test_groups_by_login_then_display_name(self):
        """Vendor login wins over the commit display name."""
        commits = [
            Commit("a", "Alice Smith", NOW, login="alice"),
            Commit("b", "Alice S.", NOW, login="alice"),
            Commit("c", "Bob Jones", NOW),
        ]
        result = calculate_commit_metrics(commits)
        assert result.total == 3
        assert result.by_author == {"alice": 2, "Bob Jones": 1}

    def test_empty(self):
        result = calculate_commit_metrics([])
        assert result.total == 0
        assert result.by_author == {}


class TestActivityWindow:
    """Test activity_for_date_range."""

    def test_counts_recent_items(self):
        """Only items newer than the window start count."""
        commits = [
            Commit("a", "alice", NOW - timedelta(days=1)),
            Commit("b", "alice", NOW - timedelta(days=8)),
            Commit("c", "alice", None),
        ]
        prs = [
            PullRequest("1", "alice", NOW - timedelta(days=2), "open"),
            PullRequest("2", "alice", NOW - timedelta(days=30), "closed"),
        ]
        window = activity_for_date_range(commits, prs, days=7, now=NOW)
        assert window.commits == 1
        assert window.pull_requests == 1
        assert window.total_activity == 2

    def test_boundary_is_exclusive(self):
        """An item exactly at the cutoff is outside the window."""
        commits = [Commit("a", "alice", NOW - timedelta(days=7))]
        assert activity_for_date_range(commits, [], days=7, now=NOW).commits == 0
