"""
Record types shared across PulseTracker.

Tasks come from the issue tracker (ClickUp), pull requests and commits from the
source-control host (GitHub). All records are immutable snapshots of vendor
state for one polling cycle; nothing here ever writes back to a vendor.
"""

from datetime import datetime, timezone
from typing import Any, NamedTuple


class Assignee(NamedTuple):
    """A member reference as it appears on a task."""

    id: str | None
    username: str


class Comment(NamedTuple):
    """A single comment on a task."""

    text: str
    author: str | None = None
    timestamp: datetime | None = None


class Task(NamedTuple):
    """One unit of tracked work."""

    id: str
    name: str
    status: str
    created_at: datetime
    updated_at: datetime | None = None
    closed_at: datetime | None = None
    assignees: tuple[Assignee, ...] = ()
    story_points: float | None = None
    due_date: datetime | None = None
    comments: tuple[Comment, ...] = ()
    url: str | None = None
    priority: str | None = None

    @property
    def last_activity_at(self) -> datetime:
        """Last update timestamp, falling back to creation time."""
        return self.updated_at or self.created_at

    @property
    def first_assignee_name(self) -> str:
        return self.assignees[0].username if self.assignees else "Unassigned"


class Review(NamedTuple):
    """A submitted pull request review."""

    submitted_at: datetime


class PullRequest(NamedTuple):
    """One code-review unit."""

    id: str
    author: str
    created_at: datetime
    state: str  # "open" or "closed"
    merged_at: datetime | None = None
    closed_at: datetime | None = None
    updated_at: datetime | None = None
    reviews: tuple[Review, ...] = ()
    additions: int | None = None
    deletions: int | None = None
    comment_count: int = 0
    repo: str | None = None
    number: int | None = None

    @property
    def is_merged(self) -> bool:
        return self.merged_at is not None


class Commit(NamedTuple):
    """A single commit."""

    id: str
    author: str
    timestamp: datetime | None
    repo: str | None = None
    login: str | None = None

    @property
    def resolved_author(self) -> str:
        """Vendor login when known, otherwise the commit display name."""
        return self.login or self.author or "unknown"


class Member(NamedTuple):
    """A team member with optional vendor identifiers."""

    name: str
    github_login: str | None = None
    clickup_id: str | None = None
    role: str | None = None


class Score(NamedTuple):
    """A derived 0-100 score plus the inputs that produced it."""

    name: str
    value: int
    inputs: dict[str, float] = {}


class DataSnapshot(NamedTuple):
    """Everything fetched in one refresh cycle."""

    tasks: tuple[Task, ...] = ()
    pull_requests: tuple[PullRequest, ...] = ()
    commits: tuple[Commit, ...] = ()
    members: tuple[Member, ...] = ()
    errors: tuple[str, ...] = ()
    fetched_at: datetime | None = None


# --- Vendor parsers ---


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_epoch_ms(value: Any) -> datetime | None:
    """Parse a ClickUp millisecond epoch (int or numeric string)."""
    if value in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def parse_iso(value: Any) -> datetime | None:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_points(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        points = float(value)
    except (TypeError, ValueError):
        return None
    return points if points > 0 else None


def task_from_clickup(data: dict[str, Any]) -> Task:
    """Build a Task from a ClickUp task payload."""
    status = data.get("status")
    if isinstance(status, dict):
        status_text = status.get("status") or status.get("name") or ""
    else:
        status_text = status or ""

    assignees = tuple(
        Assignee(
            id=str(a["id"]) if a.get("id") is not None else None,
            username=a.get("username") or a.get("email") or "unknown",
        )
        for a in data.get("assignees") or []
        if isinstance(a, dict)
    )

    comments = []
    for comment in data.get("comments") or []:
        if not isinstance(comment, dict):
            continue
        user = comment.get("user") or {}
        comments.append(
            Comment(
                text=comment.get("comment_text") or "",
                author=user.get("username") if isinstance(user, dict) else None,
                timestamp=parse_epoch_ms(comment.get("date")),
            )
        )

    priority = data.get("priority")
    if isinstance(priority, dict):
        priority = priority.get("priority")

    created_at = parse_epoch_ms(data.get("date_created")) or utc_now()

    return Task(
        id=str(data.get("id", "")),
        name=data.get("name") or "",
        status=status_text,
        created_at=created_at,
        updated_at=parse_epoch_ms(data.get("date_updated")),
        closed_at=parse_epoch_ms(data.get("date_closed")),
        assignees=assignees,
        story_points=_parse_points(data.get("points")),
        due_date=parse_epoch_ms(data.get("due_date")),
        comments=tuple(comments),
        url=data.get("url"),
        priority=priority,
    )


def review_from_github(data: dict[str, Any]) -> Review | None:
    submitted_at = parse_iso(data.get("submitted_at"))
    return Review(submitted_at) if submitted_at else None


def pull_request_from_github(
    data: dict[str, Any],
    reviews: list[dict[str, Any]] | None = None,
    repo: str | None = None,
) -> PullRequest:
    """Build a PullRequest from a GitHub REST payload (and its reviews)."""
    user = data.get("user") or {}
    parsed_reviews = [
        review
        for review in (review_from_github(r) for r in (reviews or data.get("reviews") or []))
        if review is not None
    ]
    return PullRequest(
        id=str(data.get("id", data.get("number", ""))),
        author=user.get("login") or "unknown",
        created_at=parse_iso(data.get("created_at")) or utc_now(),
        state=data.get("state") or "open",
        merged_at=parse_iso(data.get("merged_at")),
        closed_at=parse_iso(data.get("closed_at")),
        updated_at=parse_iso(data.get("updated_at")),
        reviews=tuple(parsed_reviews),
        additions=data.get("additions"),
        deletions=data.get("deletions"),
        comment_count=(data.get("comments") or 0) + (data.get("review_comments") or 0),
        repo=repo,
        number=data.get("number"),
    )


def commit_from_github(data: dict[str, Any], repo: str | None = None) -> Commit:
    """Build a Commit from a GitHub REST commit payload."""
    author = data.get("author") or {}
    commit_author = (data.get("commit") or {}).get("author") or {}
    return Commit(
        id=data.get("sha") or "",
        author=commit_author.get("name") or "unknown",
        timestamp=parse_iso(commit_author.get("date")),
        repo=repo,
        login=author.get("login") if isinstance(author, dict) else None,
    )
