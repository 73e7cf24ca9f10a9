"""
Scheduler module for the checkindex system.

Provides the clock abstraction used for every time-dependent decision
(cache TTLs, rate-limit windows, webhook backoff) and an interval scheduler
for the periodic eviction sweeps.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of wall-clock time and delays."""

    def now(self) -> float:
        """Current time in epoch seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``."""
        ...


class SystemClock:
    """Clock backed by the real system time."""

    def now(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


Callback = Callable[[], Union[Awaitable[None], None, int]]


@dataclass
class ScheduledTask:
    """Represents a periodically executed task."""

    name: str
    interval_seconds: float
    callback: Callback
    next_run: float
    last_run: Optional[float] = None
    enabled: bool = True


class Scheduler:
    """
    Interval scheduler for background maintenance work.

    Callbacks may be plain functions or coroutines. A failing callback is
    logged and does not stop the loop or other tasks.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        logger=None,
        tick_seconds: float = 1.0,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            clock: Time source (defaults to SystemClock)
            logger: Optional AuditLogger
            tick_seconds: Upper bound of the sleep between due-checks
        """
        self._clock = clock or SystemClock()
        self._logger = logger
        self._tick_seconds = tick_seconds
        self._tasks: dict[str, ScheduledTask] = {}
        self._running = False
        self._runner: Optional[asyncio.Task] = None

    def schedule(
        self,
        name: str,
        interval_seconds: float,
        callback: Callback,
    ) -> ScheduledTask:
        """
        Schedule a task to run every ``interval_seconds``.

        Raises:
            ValueError: If the interval is not positive or the name is taken
        """
        if interval_seconds <= 0:
            raise ValueError(f"Interval must be positive: {interval_seconds}")
        if name in self._tasks:
            raise ValueError(f"Task '{name}' already exists")

        task = ScheduledTask(
            name=name,
            interval_seconds=interval_seconds,
            callback=callback,
            next_run=self._clock.now() + interval_seconds,
        )
        self._tasks[name] = task
        return task

    def unschedule(self, name: str) -> bool:
        """Remove a task. Returns False if it didn't exist."""
        return self._tasks.pop(name, None) is not None

    def get_task(self, name: str) -> Optional[ScheduledTask]:
        """Get a scheduled task by name."""
        return self._tasks.get(name)

    def list_tasks(self) -> list[ScheduledTask]:
        """List all scheduled tasks."""
        return list(self._tasks.values())

    async def run_due(self) -> list[str]:
        """
        Execute every enabled task whose time has come.

        Returns:
            Names of the tasks that ran
        """
        now = self._clock.now()
        ran = []
        for task in list(self._tasks.values()):
            if not task.enabled or now < task.next_run:
                continue

            task.last_run = now
            task.next_run = now + task.interval_seconds
            ran.append(task.name)
            try:
                outcome = task.callback()
                if asyncio.iscoroutine(outcome):
                    outcome = await outcome
                self._log_debug(
                    f"Task '{task.name}' ran",
                    {"task": task.name, "outcome": outcome},
                )
            except Exception as e:
                if self._logger:
                    self._logger.log_error(
                        "Scheduler",
                        f"Task '{task.name}' failed",
                        error=e,
                        additional_data={"task": task.name},
                    )
        return ran

    def _seconds_until_next(self) -> float:
        pending = [t.next_run for t in self._tasks.values() if t.enabled]
        if not pending:
            return self._tick_seconds
        wait = min(pending) - self._clock.now()
        return max(0.0, min(wait, self._tick_seconds))

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Run the scheduler loop until ``stop()`` or ``stop_event`` is set.

        Args:
            stop_event: Optional event to signal the scheduler to stop
        """
        self._running = True

        while self._running:
            await self.run_due()

            if stop_event is not None and stop_event.is_set():
                break

            await self._clock.sleep(self._seconds_until_next())

        self._running = False

    def start(self) -> asyncio.Task:
        """Run the loop as a background task on the current event loop."""
        if self._runner is None or self._runner.done():
            self._runner = asyncio.get_running_loop().create_task(self.run())
        return self._runner

    def stop(self) -> None:
        """Signal the scheduler to stop and cancel the background task."""
        self._running = False
        if self._runner is not None and not self._runner.done():
            self._runner.cancel()
        self._runner = None

    def is_running(self) -> bool:
        """Check if the scheduler is running."""
        return self._running

    def _log_debug(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.debug("Scheduler", message, data)
