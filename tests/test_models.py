"""Tests for record parsing."""

from datetime import datetime, timezone

from pulse_tracker.models import (
    Commit,
    Task,
    commit_from_github,
    parse_epoch_ms,
    parse_iso,
    pull_request_from_github,
    task_from_clickup,
)


class TestTimestamps:
    def test_parse_epoch_ms(self):
        assert parse_epoch_ms("1714550400000") == datetime(2024, 5, 1, 8, tzinfo=timezone.utc)
        assert parse_epoch_ms(None) is None
        assert parse_epoch_ms("not-a-date") is None

    def test_parse_iso(self):
        assert parse_iso("2024-05-01T08:00:00Z") == datetime(2024, 5, 1, 8, tzinfo=timezone.utc)
        assert parse_iso("2024-05-01T08:00:00").tzinfo == timezone.utc
        assert parse_iso(None) is None
        assert parse_iso("garbage") is None


class TestTaskParsing:
    """Test task_from_clickup."""

    def test_missing_fields_use_defaults(self):
        task = task_from_clickup({"id": 7, "date_created": "1714550400000"})
        assert task.id == "7"
        assert task.status == ""
        assert task.assignees == ()
        assert task.story_points is None
        assert task.updated_at is None
        assert task.last_activity_at == task.created_at
        assert task.first_assignee_name == "Unassigned"

    def test_non_positive_points_are_dropped(self):
        task = task_from_clickup({"id": "1", "points": "0"})
        assert task.story_points is None

    def test_plain_status_string(self):
        task = task_from_clickup({"id": "1", "status": "Done"})
        assert task.status == "Done"


class TestGitHubParsing:
    """Test pull request and commit parsing."""

    def test_pull_request(self):
        pr = pull_request_from_github(
            {
                "id": 1,
                "number": 12,
                "state": "closed",
                "user": {"login": "alice"},
                "created_at": "2024-05-01T00:00:00Z",
                "merged_at": "2024-05-02T00:00:00Z",
                "additions": 10,
                "deletions": 4,
                "comments": 2,
                "review_comments": 3,
            },
            [{"submitted_at": "2024-05-01T06:00:00Z"}, {"submitted_at": None}],
            repo="api",
        )
        assert pr.author == "alice"
        assert pr.is_merged
        assert pr.number == 12
        assert pr.comment_count == 5
        assert len(pr.reviews) == 1

    def test_commit_without_account(self):
        commit = commit_from_github(
            {"sha": "abc", "author": None, "commit": {"author": {"name": "Bob"}}}
        )
        assert commit.login is None
        assert commit.resolved_author == "Bob"
        assert commit.timestamp is None

    def test_resolved_author_fallback(self):
        assert Commit("a", "", None).resolved_author == "unknown"

    def test_task_is_hashable(self):
        task = Task("1", "x", "done", datetime(2024, 5, 1, tzinfo=timezone.utc))
        assert hash(task) == hash(task._replace())
