"""
Alert dispatch to a chat webhook.

Sinks never raise: a failed delivery is printed and reported as ``False`` so
callers can move on to the next alert.
"""

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Iterable, Protocol

import httpx
from rich.console import Console

from pulse_tracker.http_client import DEFAULT_TIMEOUT, _get_async_http_client
from pulse_tracker.metrics.base import is_in_progress
from pulse_tracker.models import Task, utc_now

if TYPE_CHECKING:
    from pulse_tracker.blocked import BlockedTicket
    from pulse_tracker.scoring import TeamScores
    from pulse_tracker.wellbeing import BurnoutResult

console = Console(stderr=True)

MESSAGE_PREFIXES = {
    "blocker": "🚧 *Blocker Alert* 🚧\n\n",
    "kudos": "🎉 *Kudos* 🎉\n\n",
    "burnout": "🔥 *Burnout Alert* 🔥\n\n",
    "follow-up": "🔄 *Follow-up Reminder* 🔄\n\n",
}

MESSAGE_ICONS = {
    "blocker": ":construction:",
    "kudos": ":tada:",
    "burnout": ":fire:",
    "follow-up": ":clock10:",
}
DEFAULT_ICON = ":chart_with_upwards_trend:"


class AlertSink(Protocol):
    """Anything that can deliver a text alert."""

    async def send(self, text: str) -> bool: ...


def format_message(message: str, message_type: str = "info") -> str:
    return MESSAGE_PREFIXES.get(message_type, "") + message


def icon_for_type(message_type: str) -> str:
    return MESSAGE_ICONS.get(message_type, DEFAULT_ICON)


class SlackWebhookSink:
    """Deliver alerts to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: str,
        username: str = "PulseTracker",
        verify_ssl: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if not webhook_url:
            raise ValueError(
                "SLACK_WEBHOOK_URL is required to send alerts.\n"
                "\n"
                "Create an incoming webhook at https://api.slack.com/messaging/webhooks\n"
                "and set it:\n"
                "   export SLACK_WEBHOOK_URL='https://hooks.slack.com/services/...'\n"
                "   or add to your .env file: SLACK_WEBHOOK_URL=...\n"
            )
        self.webhook_url = webhook_url
        self.username = username
        self.verify_ssl = verify_ssl
        self.timeout = timeout

    async def send(self, text: str, message_type: str = "info") -> bool:
        payload = {
            "text": format_message(text, message_type),
            "username": self.username,
            "icon_emoji": icon_for_type(message_type),
        }
        try:
            client = await _get_async_http_client(self.verify_ssl, self.timeout)
            response = await client.post(self.webhook_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            console.print(f"[red]Slack webhook failed: {e}[/red]")
            return False
        return True


# --- Message builders ---


def _unit_label(unit: str) -> str:
    return "seconds" if unit == "seconds" else "hours"


def format_stagnant_alert(
    task: Task, threshold_value: float, threshold_unit: str, now: datetime | None = None
) -> str:
    now = now or utc_now()
    elapsed = (now - task.last_activity_at).total_seconds()
    duration = int(elapsed) if threshold_unit == "seconds" else int(elapsed // 3600)
    unit = _unit_label(threshold_unit)
    assignees = ", ".join(a.username for a in task.assignees) or "Unassigned"
    link = f"<{task.url}|{task.name}>" if task.url else task.name
    return (
        "🚨 *Stagnant Task Detected*\n\n"
        f"*Task:* {link}\n"
        f"*Assignee(s):* {assignees}\n"
        f"*Status:* {task.status or 'Unknown'}\n"
        f"*Stagnant for:* {duration} {unit}\n"
        f"*Threshold:* {threshold_value:g} {unit}\n\n"
        f"This task has been in progress without updates for over "
        f"{threshold_value:g} {unit}. Please check if it needs attention."
    )


def format_test_alert(
    alerts_enabled: bool, threshold_value: float, threshold_unit: str, now: datetime | None = None
) -> str:
    now = now or utc_now()
    return (
        "🧪 *Test Alert*\n\n"
        "This is a test message from PulseTracker's stagnant task alert system.\n\n"
        "*Settings:*\n"
        f"• Alerts Enabled: {'Yes' if alerts_enabled else 'No'}\n"
        f"• Threshold: {threshold_value:g} {_unit_label(threshold_unit)}\n"
        f"• Current Time: {now:%Y-%m-%d %H:%M:%S %Z}"
    )


def format_blocker_alert(ticket: "BlockedTicket") -> str:
    return (
        f"Task: *{ticket.task.name}*\n"
        f"Assignee: {ticket.assignee_name}\n"
        f"Status: {ticket.task.status or 'Unknown'}\n"
        f"Blocked for: {ticket.hours_blocked} hours\n\n"
        "Please check on this task and help unblock it! 🙏"
    )


def format_follow_up_message(ticket: "BlockedTicket") -> str:
    return (
        f"Task: *{ticket.task.name}* has been blocked for "
        f"{ticket.hours_blocked // 24} days\n"
        f"Assignee: {ticket.assignee_name}\n\n"
        "This task needs attention! Please:\n"
        "• Check if it can be unblocked\n"
        "• Reassign if needed\n"
        "• Update status if work is in progress\n\n"
        "Let's keep things moving! 🏃"
    )


def format_review_request(ticket: "BlockedTicket") -> str:
    return (
        f"🔍 Review needed for: *{ticket.task.name}*\n"
        f"Assignee: {ticket.assignee_name}\n"
        f"Blocked for: {ticket.hours_blocked // 24} days\n\n"
        "Please prioritize reviewing this task! 🙏"
    )


def format_kudos_message(
    teammate: str, commits: int = 0, pull_requests: int = 0, completed_tasks: int = 0
) -> str:
    lines = [f"🎉 *Kudos to {teammate}!* 🎉", ""]
    if commits > 0:
        lines.append(f"📝 {commits} commits")
    if pull_requests > 0:
        lines.append(f"🔄 {pull_requests} pull requests")
    if completed_tasks > 0:
        lines.append(f"✅ {completed_tasks} tasks completed")
    lines.extend(["", "Keep up the great work! 🚀"])
    return "\n".join(lines)


def format_burnout_alert(teammate: str, burnout: "BurnoutResult") -> str:
    metrics = burnout.metrics
    return (
        f"{teammate} might be experiencing high workload:\n\n"
        f"• Open tasks: {metrics['open_tasks']}\n"
        f"• Recent activity: {metrics['recent_activity']}\n"
        f"• Ongoing PRs: {metrics['ongoing_prs']}\n\n"
        "Consider checking in with them or redistributing some work. 💙"
    )


def format_health_alert(health_score: int) -> str:
    return (
        f"🚨 *Team Health Alert*: Score has dropped to {health_score}%\n"
        "This requires immediate attention to prevent impact on productivity "
        "and team morale.\n\n"
        "*Recommended Actions:*\n"
        "• Schedule a team check-in meeting\n"
        "• Review workload distribution\n"
        "• Identify and remove blockers\n"
        "• Consider team wellness activities"
    )


def format_quality_alert(quality_score: int) -> str:
    return (
        f"🚨 *Team Pull request Alert*: Score has dropped to 📉 {quality_score}%\n"
        "Please prioritize pull request reviews to unblock other developers."
    )


def format_overdue_message(task: Task) -> str:
    first_name = task.first_assignee_name.split(" ")[0]
    priority = f" with 🚨 {task.priority} priority" if task.priority else ""
    return f"Hey, {first_name}, Task {task.name} is overdue{priority}. Please check it out"


def find_overdue_tasks(tasks: Iterable[Task], now: datetime | None = None) -> list[Task]:
    """In-progress tasks whose due date has passed."""
    now = now or utc_now()
    return [
        task
        for task in tasks
        if task.due_date is not None and is_in_progress(task) and task.due_date < now
    ]


class TeamHealthMonitor:
    """
    Alert when team health or quality drops below a threshold.

    Each alert kind has its own cooldown so a persistently low score does
    not page the channel on every refresh.
    """

    def __init__(
        self,
        sink: AlertSink,
        health_threshold: int = 50,
        quality_threshold: int = 50,
        cooldown: timedelta = timedelta(hours=24),
    ):
        self.sink = sink
        self.health_threshold = health_threshold
        self.quality_threshold = quality_threshold
        self.cooldown = cooldown
        self.last_alert: dict[str, datetime] = {}

    def is_alert_active(self, kind: str, now: datetime | None = None) -> bool:
        """True while ``kind`` is inside its cooldown window."""
        now = now or utc_now()
        sent_at = self.last_alert.get(kind)
        return sent_at is not None and now - sent_at < self.cooldown

    async def evaluate(self, scores: "TeamScores", now: datetime | None = None) -> list[str]:
        """
        Send any due alerts for the given team scores.

        Returns:
            The alert kinds that were delivered.
        """
        now = now or utc_now()
        due = []
        if scores.health.value < self.health_threshold:
            due.append(("health", format_health_alert(scores.health.value)))
        if scores.quality.value < self.quality_threshold:
            due.append(("quality", format_quality_alert(scores.quality.value)))

        sent = []
        for kind, text in due:
            if self.is_alert_active(kind, now):
                continue
            if await self.sink.send(text):
                self.last_alert[kind] = now
                sent.append(kind)
        return sent
