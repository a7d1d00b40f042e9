"""
Stagnation Detector.

An in-progress task is stagnant once its last update is older than the
configured threshold. Each poll computes the current stagnant set and alerts
only for ids that were not stagnant on the previous poll, so one stagnation
episode produces exactly one alert. A task that stops being stagnant drops out
of the tracked set and will alert again if it goes stagnant later.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Iterable, NamedTuple

from rich.console import Console

from pulse_tracker.alerts import AlertSink, format_stagnant_alert, format_test_alert
from pulse_tracker.config import AlertSettings, validate_alert_settings
from pulse_tracker.metrics.base import is_in_progress
from pulse_tracker.models import Task, utc_now

console = Console(stderr=True)

# Seconds between consecutive alerts in one batch
DEFAULT_ALERT_DELAY = 1.0
# Seconds before the first check after monitoring starts
DEFAULT_INITIAL_DELAY = 5.0

TaskFetcher = Callable[[], Awaitable[Iterable[Task]]]


class StagnationRecord(NamedTuple):
    task_id: str
    first_detected_at: datetime


def is_stagnant(task: Task, threshold_seconds: float, now: datetime) -> bool:
    if not is_in_progress(task):
        return False
    return (now - task.last_activity_at).total_seconds() > threshold_seconds


def detect_stagnant_tasks(
    tasks: Iterable[Task], alerts: AlertSettings, now: datetime | None = None
) -> list[Task]:
    """In-progress tasks not updated within the threshold."""
    now = now or utc_now()
    return [task for task in tasks if is_stagnant(task, alerts.threshold_seconds, now)]


class StagnationDetector:
    """
    Poll tasks periodically and alert on newly stagnant ones.

    Settings are validated at construction and may be replaced on each
    ``start()``; a running loop keeps the settings it started with.
    """

    def __init__(
        self,
        settings: AlertSettings,
        sink: AlertSink | None = None,
        fetch_tasks: TaskFetcher | None = None,
        tasks: Iterable[Task] = (),
        alert_delay: float = DEFAULT_ALERT_DELAY,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        verbose: bool = False,
    ):
        self.settings = validate_alert_settings(settings)
        self.sink = sink
        self.fetch_tasks = fetch_tasks
        self.tasks: list[Task] = list(tasks)
        self.alert_delay = alert_delay
        self.initial_delay = initial_delay
        self.clock = clock
        self.sleep = sleep
        self.verbose = verbose

        self.records: dict[str, StagnationRecord] = {}
        self.stagnant_tasks: list[Task] = []
        self.last_check: datetime | None = None
        self.alerts_sent = 0
        self._runner: asyncio.Task | None = None
        self._poll_lock = asyncio.Lock()

    @property
    def is_monitoring(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def check(self, tasks: Iterable[Task] | None = None, now: datetime | None = None) -> list[Task]:
        """
        Recompute the stagnant set and return the newly stagnant tasks.

        Args:
            tasks: Task snapshot (defaults to the last fetched tasks).
            now: Reference time (defaults to the detector clock).

        Returns:
            Tasks stagnant now that were not stagnant on the previous check.
        """
        if tasks is not None:
            self.tasks = list(tasks)
        now = now or self.clock()

        current = detect_stagnant_tasks(self.tasks, self.settings, now)
        newly_stagnant = [task for task in current if task.id not in self.records]

        self.records = {
            task.id: self.records.get(task.id) or StagnationRecord(task.id, now)
            for task in current
        }
        self.stagnant_tasks = current
        self.last_check = now

        if self.verbose:
            console.print(
                f"[dim]Stagnation check: {len(current)} stagnant, "
                f"{len(newly_stagnant)} new[/dim]"
            )
        return newly_stagnant

    async def dispatch(self, tasks: list[Task]) -> int:
        """
        Send one alert per task, sequentially, pausing between messages.

        A failed delivery is reported and skipped. If the batch is cancelled,
        tasks whose delivery was never attempted are dropped from ``records``
        so the next activation alerts them.

        Returns:
            Number of alerts delivered.
        """
        if self.sink is None:
            if tasks:
                console.print("[yellow]No alert sink configured; skipping alerts.[/yellow]")
            return 0

        delivered = 0
        attempted = 0
        try:
            for index, task in enumerate(tasks):
                if index > 0 and self.alert_delay > 0:
                    await self.sleep(self.alert_delay)
                text = format_stagnant_alert(
                    task,
                    self.settings.threshold_value,
                    self.settings.threshold_unit,
                    self.clock(),
                )
                try:
                    ok = await self.sink.send(text)
                except Exception as e:
                    console.print(f"[red]Failed to send stagnant task alert for {task.name}: {e}[/red]")
                else:
                    if ok:
                        delivered += 1
                        console.print(f"Stagnant task alert sent for: [bold]{task.name}[/bold]")
                    else:
                        console.print(f"[red]Failed to send stagnant task alert for {task.name}[/red]")
                attempted = index + 1
        except asyncio.CancelledError:
            for task in tasks[attempted:]:
                self.records.pop(task.id, None)
            raise
        finally:
            self.alerts_sent += delivered
        return delivered

    async def refresh(self) -> None:
        """Re-fetch tasks; on failure keep the previous snapshot."""
        if self.fetch_tasks is None:
            return
        try:
            self.tasks = list(await self.fetch_tasks())
        except Exception as e:
            console.print(f"[red]Error refreshing tasks: {e}[/red]")

    async def poll(self) -> list[Task]:
        """One check-and-alert cycle. Skipped while alerts are disabled."""
        if not self.settings.alerts_enabled:
            if self.verbose:
                console.print("[dim]Alerts disabled; skipping stagnation check[/dim]")
            return []
        async with self._poll_lock:
            newly_stagnant = self.check()
            await self.dispatch(newly_stagnant)
            return newly_stagnant

    async def run(self) -> None:
        """Initial check after a short delay, then refresh-and-check forever."""
        await self.sleep(self.initial_delay)
        await self.poll()
        while True:
            await self.sleep(self.settings.check_interval_seconds)
            await self.refresh()
            await self.poll()

    def start(self, settings: AlertSettings | None = None) -> asyncio.Task:
        """
        Start monitoring on the running event loop.

        Args:
            settings: Fresh alert settings for this activation (ignored while
                already monitoring).
        """
        if self.is_monitoring:
            return self._runner
        if settings is not None:
            self.settings = validate_alert_settings(settings)
        self._runner = asyncio.get_running_loop().create_task(self.run())
        return self._runner

    async def stop(self) -> None:
        """Cancel the pending timer (or in-flight check) and wait for it."""
        runner, self._runner = self._runner, None
        if runner is None or runner.done():
            return
        runner.cancel()
        try:
            await runner
        except asyncio.CancelledError:
            pass

    async def send_test_alert(self) -> bool:
        if self.sink is None:
            console.print("[yellow]Please configure a Slack webhook URL first.[/yellow]")
            return False
        return await self.sink.send(
            format_test_alert(
                self.settings.alerts_enabled,
                self.settings.threshold_value,
                self.settings.threshold_unit,
                self.clock(),
            )
        )
