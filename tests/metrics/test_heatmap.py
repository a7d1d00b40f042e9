"""
Tests for the team activity heatmap.
"""

from datetime import date, datetime, timedelta, timezone

from pulse_tracker.metrics.heatmap import (
    activity_level,
    calculate_member_heatmap,
    calculate_team_heatmap,
    heatmap_dates,
    summarize_heatmap,
)
from pulse_tracker.models import Assignee, Commit, Member, PullRequest, Task

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
ALICE = Member("Alice Smith", github_login="asmith", clickup_id="42")
BOB = Member("Bob Jones", github_login="bjones")


def _data():
    alice = Assignee("42", "alice")
    tasks = [
        Task("1", "Ship billing", "done", NOW - timedelta(days=5), closed_at=NOW,
             assignees=(alice,)),
        Task("2", "Old work", "done", NOW - timedelta(days=30),
             closed_at=NOW - timedelta(days=20), assignees=(alice,)),
        Task("3", "Still open", "in progress", NOW - timedelta(days=2), assignees=(alice,)),
    ]
    prs = [PullRequest("p1", "asmith", NOW - timedelta(hours=1), "open")]
    commits = [
        Commit("c1", "Alice Smith", NOW - timedelta(hours=2), login="asmith"),
        Commit("c2", "Alice Smith", NOW - timedelta(days=1), login="asmith"),
        Commit("c3", "Alice Smith", NOW - timedelta(days=1, hours=1), login="asmith"),
        Commit("c4", "Alice Smith", None, login="asmith"),
    ] + [
        Commit(f"b{i}", "Bob Jones", NOW - timedelta(days=7), login="bjones") for i in range(6)
    ]
    return tasks, prs, commits


class TestActivityLevel:
    """Test the level buckets."""

    def test_bucket_bounds(self):
        """Bounds are inclusive and use the unrounded value."""
        assert activity_level(0) == 0
        assert activity_level(1.5) == 1
        assert activity_level(2) == 1
        assert activity_level(2.5) == 2
        assert activity_level(5) == 2
        assert activity_level(5.5) == 3
        assert activity_level(10) == 3
        assert activity_level(10.5) == 4


class TestHeatmapDates:
    def test_window_ends_today(self):
        dates = heatmap_dates(14, NOW)
        assert len(dates) == 14
        assert dates[0] == date(2024, 5, 19)
        assert dates[-1] == date(2024, 6, 1)


class TestMemberHeatmap:
    """Test calculate_member_heatmap."""

    def test_weights_and_rounding(self):
        """commits + 2 x PRs + 1.5 x closed tasks, rounded half up."""
        tasks, prs, commits = _data()
        row = calculate_member_heatmap(ALICE, tasks, prs, commits, now=NOW)

        assert len(row.days) == 14
        today = row.days[-1]
        assert (today.commits, today.pull_requests, today.tasks) == (1, 1, 1)
        assert today.activity == 5  # 4.5
        assert today.level == 2

        yesterday = row.days[-2]
        assert yesterday.commits == 2
        assert yesterday.activity == 2
        assert yesterday.level == 1

        assert row.total_activity == 7
        assert row.average_activity == 1  # 0.5 rounds up

    def test_activity_outside_window_is_ignored(self):
        """A task closed 20 days ago never shows up."""
        tasks, prs, commits = _data()
        row = calculate_member_heatmap(ALICE, tasks, prs, commits, now=NOW)
        assert sum(cell.tasks for cell in row.days) == 1

    def test_member_without_activity(self):
        row = calculate_member_heatmap(Member("Carol"), [], [], [], now=NOW)
        assert row.total_activity == 0
        assert all(cell.level == 0 for cell in row.days)


class TestTeamHeatmap:
    """Test calculate_team_heatmap."""

    def test_rows_sorted_by_total_activity(self):
        tasks, prs, commits = _data()
        heatmap = calculate_team_heatmap(tasks, prs, commits, members=[BOB, ALICE], now=NOW)

        assert [row.member.name for row in heatmap.members] == ["Alice Smith", "Bob Jones"]
        bob = heatmap.members[1]
        assert bob.total_activity == 6
        assert max(cell.level for cell in bob.days) == 3
        assert bob.average_activity == 0
        assert heatmap.start == date(2024, 5, 19)
        assert heatmap.end == date(2024, 6, 1)

    def test_summary(self):
        """Active members are those whose rounded daily average is above zero."""
        tasks, prs, commits = _data()
        heatmap = calculate_team_heatmap(tasks, prs, commits, members=[ALICE, BOB], now=NOW)
        assert heatmap.summary.total_activity == 13
        assert heatmap.summary.team_average == 1
        assert heatmap.summary.active_members == 1

    def test_empty_team(self):
        heatmap = calculate_team_heatmap([], [], [], now=NOW)
        assert heatmap.members == ()
        assert heatmap.summary == summarize_heatmap([])
        assert heatmap.summary.total_activity == 0
