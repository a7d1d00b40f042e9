"""
Tests for the score composer.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from pulse_tracker.metrics.commits import CommitMetrics
from pulse_tracker.metrics.members import MemberTaskMetrics
from pulse_tracker.metrics.pull_requests import PullRequestMetrics
from pulse_tracker.models import Assignee, Commit, DataSnapshot, Member, PullRequest, Task
from pulse_tracker.scoring import (
    calculate_team_productivity,
    member_health_score,
    member_productivity_score,
    pr_merge_rate,
    productivity_score,
    quality_score,
    refresh_report,
    team_health_score,
)

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


class TestTeamScores:
    """Test team-scope composite scores."""

    def test_health_weights(self):
        """Half of every ceiling gives a health score of 50."""
        prs = PullRequestMetrics(total=2, merged=1, average_time_to_first_review=96)
        score = team_health_score(10, 5, prs)
        assert score.name == "health"
        assert score.value == 50
        assert score.inputs["blockers"] == 0.5

    def test_no_data_is_healthy(self):
        """Missing PRs and blockers score as healthy, not as zero."""
        empty = PullRequestMetrics()
        assert pr_merge_rate(empty) == 1.0
        assert team_health_score(0, 0, empty).value == 70
        assert quality_score(empty, 0).value == 100

    def test_pathological_inputs_are_clamped(self):
        """Unbounded raw values saturate at 100."""
        prs = PullRequestMetrics(total=500, merged=500, average_time_to_first_review=0.1)
        assert productivity_score(1000, prs, CommitMetrics(total=1000)).value == 100
        assert team_health_score(1000, 0, prs).value == 100
        assert quality_score(prs, 0).value == 100

    def test_many_blockers_never_go_negative(self):
        prs = PullRequestMetrics(total=10, merged=0, average_time_to_first_review=10_000)
        assert team_health_score(0, 500, prs).value >= 0
        assert quality_score(prs, 500).value >= 0

    def test_productivity_weights(self):
        prs = PullRequestMetrics(total=5, merged=5)
        score = productivity_score(15, prs, CommitMetrics(total=25))
        # 0.5 * 0.5 + 0.3 * 0.5 + 0.2 * 0.5
        assert score.value == 50

    def test_quality_review_time(self):
        prs = PullRequestMetrics(total=4, merged=4, average_time_to_first_review=48)
        # 0.4 * 1 + 0.4 * 0.5 + 0.2 * 1
        assert quality_score(prs, 0).value == 80


class TestMemberScores:
    """Test member-scope composite scores."""

    def test_member_productivity(self):
        tasks = MemberTaskMetrics(total=2, completed=2, completion_rate=100)
        prs = PullRequestMetrics(total=5, merged=5)
        score = member_productivity_score(tasks, prs, CommitMetrics(total=10))
        # 0.5 * 2/5 + 0.3 * 1 + 0.2 * 0.5
        assert score.value == 60

    def test_member_productivity_without_tasks(self):
        score = member_productivity_score(MemberTaskMetrics(), PullRequestMetrics(), CommitMetrics())
        assert score.value == 0

    def test_member_health(self):
        tasks = MemberTaskMetrics(total=4, completed=2, blocked=1)
        assert member_health_score(tasks, PullRequestMetrics()).value == 70

    def test_member_health_with_nothing_completed(self):
        tasks = MemberTaskMetrics(total=3, blocked=3)
        assert member_health_score(tasks, PullRequestMetrics()).value == 100

    def test_member_health_floor(self):
        tasks = MemberTaskMetrics(total=6, completed=1, blocked=5)
        prs = PullRequestMetrics(total=2, merged=0)
        assert member_health_score(tasks, prs).value == 0


class TestTeamReport:
    """Test the full team report."""

    def _data(self):
        alice = Assignee("42", "alice")
        tasks = [
            Task("1", "Ship it", "done", NOW - timedelta(days=10), NOW - timedelta(days=2),
                 assignees=(alice,), story_points=3),
            Task("2", "Build", "in progress", NOW - timedelta(days=5), assignees=(alice,)),
            Task("3", "Wait", "blocked", NOW - timedelta(days=5)),
        ]
        prs = [
            PullRequest("p1", "asmith", NOW - timedelta(days=4), "closed",
                        merged_at=NOW - timedelta(days=3)),
        ]
        commits = [Commit("c1", "Alice Smith", NOW - timedelta(days=1), login="asmith")]
        return tasks, prs, commits

    def test_report_sections(self):
        tasks, prs, commits = self._data()
        member = Member("Alice Smith", github_login="asmith", clickup_id="42")
        report = calculate_team_productivity(tasks, prs, commits, days=7, members=[member], now=NOW)

        assert report.time_period.days == 7
        assert report.time_period.end == NOW
        assert (report.tasks.total, report.tasks.completed) == (3, 1)
        assert report.tasks.in_progress == 1
        assert report.tasks.blocked == 1
        assert report.tasks.velocity.total_points == 3
        assert report.code.pull_requests.merged == 1
        assert report.code.commits.total == 1

        assert len(report.members) == 1
        entry = report.members[0]
        assert entry.metrics.tasks.total == 2
        assert entry.metrics.pull_requests.total == 1
        assert entry.metrics.commits.total == 1
        assert 0 <= entry.productivity.value <= 100

    def test_roster_is_discovered_without_configuration(self):
        tasks, prs, commits = self._data()
        report = calculate_team_productivity(tasks, prs, commits, days=7, now=NOW)
        names = {entry.metrics.member.name for entry in report.members}
        assert "alice" in names
        assert "asmith" in names

    def test_empty_report(self):
        report = calculate_team_productivity([], [], [], now=NOW)
        assert report.tasks.total == 0
        assert report.members == ()
        assert report.scores.health.value == 70

    def test_refresh_report_is_memoized(self):
        tasks, prs, commits = self._data()
        snapshot = DataSnapshot(
            tasks=tuple(tasks),
            pull_requests=tuple(prs),
            commits=tuple(commits),
            errors=("GitHub acme/api: timeout",),
            fetched_at=NOW,
        )
        first = refresh_report(snapshot, 7)
        assert refresh_report(snapshot, 7) is first
        assert first.errors == ("GitHub acme/api: timeout",)

    def test_refresh_report_members_are_immutable(self):
        """The shared report exposes members as a tuple."""
        tasks, prs, commits = self._data()
        snapshot = DataSnapshot(
            tasks=tuple(tasks), pull_requests=tuple(prs), commits=tuple(commits), fetched_at=NOW
        )
        report = refresh_report(snapshot, 7)
        assert isinstance(report.members, tuple)

    def test_refresh_report_without_fetch_time_is_not_cached(self):
        """A snapshot with no fetch time is measured against the current clock each call."""
        tasks, prs, commits = self._data()
        snapshot = DataSnapshot(
            tasks=tuple(tasks), pull_requests=tuple(prs), commits=tuple(commits)
        )
        first_now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        second_now = datetime(2024, 6, 3, tzinfo=timezone.utc)
        with patch("pulse_tracker.scoring.utc_now", side_effect=[first_now, second_now]):
            first = refresh_report(snapshot, 7)
            second = refresh_report(snapshot, 7)
        assert first is not second
        assert first.time_period.end == first_now
        assert second.time_period.end == second_now
