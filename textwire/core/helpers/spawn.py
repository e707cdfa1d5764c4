import asyncio
import logging
from typing import Any, Coroutine


class TaskSpawner:
    """
    A lightweight helper for spawning and tracking background asyncio tasks.

    The MessageServer uses it for the per-connection admission work started
    by the accept loop. It ensures that:
    - all spawned tasks are tracked until completion
    - unhandled exceptions inside tasks are logged
    - completed tasks are automatically removed from the internal registry
    - pending tasks can be awaited, then cancelled, on shutdown
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._tasks: set[asyncio.Task[Any]] = set()
        self._logger = logger or logging.getLogger("core.helpers.spawn")

    @property
    def remaining_tasks(self) -> int:
        """Return the number of tasks spawned and not yet completed."""
        return len(self._tasks)

    def on_done(self, task: asyncio.Task[Any]) -> None:
        """
        Callback executed when a spawned task completes.

        If the task raised an exception, it is logged. Cancellation is not an
        error. The task is then removed from the internal tracking set.
        """
        self._tasks.discard(task)

        if task.cancelled():
            return

        if ex := task.exception():
            self._logger.error(
                f"Error occurred in task {task.get_name()}: {str(ex)}",
                exc_info=ex
            )

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[Any]:
        """
        Spawn a coroutine as a background task and track its lifecycle.
        """
        task = self._loop.create_task(coro)
        task.add_done_callback(self.on_done)
        self._tasks.add(task)
        return task

    async def join(self, timeout: float) -> None:
        """
        Wait for every tracked task to complete. Tasks still running after
        `timeout` seconds are cancelled.
        """
        if not self._tasks:
            return

        tasks = set(self._tasks)
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            self._logger.error(
                f"Cancel {len(pending)} running task(s), "
                f"timeout graceful shutdown: {pending}"
            )
            for task in pending:
                task.cancel("Task cancelled, timeout graceful shutdown exceeded")
            await asyncio.gather(*pending, return_exceptions=True)
