"""Pull request throughput and review latency metrics."""

from typing import Iterable, NamedTuple

from pulse_tracker.metrics.base import elapsed_days, elapsed_hours, mean, round_half_up
from pulse_tracker.models import PullRequest


class PullRequestMetrics(NamedTuple):
    """
    PR counts and averages.

    ``average_time_to_merge`` is in days over merged PRs only,
    ``average_time_to_first_review`` in hours over reviewed PRs only.
    Both are 0 when nothing qualifies.
    """

    total: int = 0
    open: int = 0
    merged: int = 0
    closed: int = 0
    average_time_to_merge: float = 0
    average_time_to_first_review: float = 0
    by_author: dict[str, "PullRequestMetrics"] = {}


class CodeReviewStats(NamedTuple):
    """Review activity across a PR set."""

    total_reviews: int = 0
    average_review_time_hours: float = 0
    average_comments_per_pr: float = 0
    review_coverage: float = 0  # % of PRs with at least one review


def time_to_merge_days(pr: PullRequest) -> float | None:
    if pr.merged_at is None:
        return None
    return elapsed_days(pr.created_at, pr.merged_at)


def time_to_first_review_hours(pr: PullRequest) -> float | None:
    if not pr.reviews:
        return None
    first_review = min(review.submitted_at for review in pr.reviews)
    return elapsed_hours(pr.created_at, first_review)


def _summarize(prs: list[PullRequest]) -> PullRequestMetrics:
    merge_times = [t for t in (time_to_merge_days(pr) for pr in prs) if t is not None]
    review_times = [
        t for t in (time_to_first_review_hours(pr) for pr in prs) if t is not None
    ]
    return PullRequestMetrics(
        total=len(prs),
        open=sum(1 for pr in prs if pr.state == "open"),
        merged=sum(1 for pr in prs if pr.is_merged),
        closed=sum(1 for pr in prs if pr.state == "closed" and not pr.is_merged),
        average_time_to_merge=mean(merge_times),
        average_time_to_first_review=mean(review_times),
    )


def calculate_pr_metrics(pull_requests: Iterable[PullRequest]) -> PullRequestMetrics:
    """
    Calculates PR metrics for a set of pull requests.

    Args:
        pull_requests: PR snapshot.

    Returns:
        PullRequestMetrics for the whole set, with the same shape grouped by
        author in ``by_author``.
    """
    prs = list(pull_requests)
    if not prs:
        return PullRequestMetrics()

    grouped: dict[str, list[PullRequest]] = {}
    for pr in prs:
        grouped.setdefault(pr.author or "unknown", []).append(pr)

    return _summarize(prs)._replace(
        by_author={author: _summarize(items) for author, items in grouped.items()}
    )


def calculate_average_pr_size(pull_requests: Iterable[PullRequest]) -> int:
    """Average lines changed over PRs that report both additions and deletions."""
    sized = [pr for pr in pull_requests if pr.additions and pr.deletions]
    if not sized:
        return 0
    total_changes = sum(pr.additions + pr.deletions for pr in sized)
    return round_half_up(total_changes / len(sized))


def calculate_code_review_stats(pull_requests: Iterable[PullRequest]) -> CodeReviewStats:
    prs = list(pull_requests)
    if not prs:
        return CodeReviewStats()

    review_times = [
        t for t in (time_to_first_review_hours(pr) for pr in prs) if t is not None
    ]
    return CodeReviewStats(
        total_reviews=sum(len(pr.reviews) for pr in prs),
        average_review_time_hours=mean(review_times),
        average_comments_per_pr=sum(pr.comment_count for pr in prs) / len(prs),
        review_coverage=len(review_times) / len(prs) * 100,
    )
