"""Process-lifetime background tasks: periodic jobs and long-running loops."""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[Any]]


async def run_periodically(
    name: str,
    job: Job,
    interval: float,
    *,
    run_immediately: bool = True,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Run job every interval seconds until cancelled or stop_event is set.

    A failing run is logged and the schedule continues; there is no retry
    before the next run.
    """
    if not run_immediately:
        await asyncio.sleep(interval)
    while stop_event is None or not stop_event.is_set():
        try:
            await job()
        except asyncio.CancelledError:
            raise
        except Exception:  # pylint: disable=broad-except
            logger.exception("Scheduled job %s failed", name)
        await asyncio.sleep(interval)


class TaskSupervisor:
    """Owns the background tasks of the process; start at startup, stop at shutdown."""

    def __init__(self) -> None:
        self._factories: dict[str, Callable[[], Awaitable[Any]]] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def tasks(self) -> dict[str, asyncio.Task]:
        return dict(self._tasks)

    def add(self, name: str, factory: Callable[[], Awaitable[Any]]) -> None:
        """Register a long-running coroutine (e.g. a loop that never returns)."""
        if name in self._factories:
            raise ValueError(f"Task already registered: {name}")
        self._factories[name] = factory

    def add_periodic(
        self, name: str, job: Job, interval: float, *, run_immediately: bool = True
    ) -> None:
        """Register job to run every interval seconds."""
        self.add(
            name,
            lambda: run_periodically(name, job, interval, run_immediately=run_immediately),
        )

    def start(self) -> None:
        for name, factory in self._factories.items():
            if name not in self._tasks:
                self._tasks[name] = asyncio.create_task(factory(), name=name)
                self._tasks[name].add_done_callback(self._on_done)
        logger.info("Started background tasks: %s", ", ".join(self._tasks))

    async def stop(self) -> None:
        """Cancel every task and wait for them to finish."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    @staticmethod
    def _on_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task %s exited", task.get_name(), exc_info=exc)
