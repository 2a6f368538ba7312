"""
Fire-and-forget task runner for index maintenance.

TTL resync and lazy prune run after the triggering operation has already
returned. Their failures are logged and counted, never raised: every task
is idempotent, so the next triggering call simply retries the same work.
"""

import asyncio
from typing import Any, Coroutine

from redis_user_sessions.observability.logging import get_logger
from redis_user_sessions.observability.metrics import record_background_task

logger = get_logger(__name__)


class BackgroundTasks:
    """
    Tracks background tasks spawned on the running event loop.

    Holds a strong reference to each pending task so it is not garbage
    collected mid-flight, and drops it from a done-callback once finished.

    Example:
        >>> tasks = BackgroundTasks()
        >>> tasks.spawn("resync_ttl", index.resync_ttl("u_1"), user_id="u_1")
        >>> await tasks.wait()
    """

    def __init__(self) -> None:
        self._tasks: dict[asyncio.Task[Any], dict[str, Any]] = {}

    @property
    def pending(self) -> int:
        """Number of tasks that have not finished yet."""
        return len(self._tasks)

    def spawn(
        self,
        name: str,
        coro: Coroutine[Any, Any, Any],
        **context: Any,
    ) -> asyncio.Task[Any]:
        """
        Schedule `coro` without awaiting it.

        Must be called from within a running event loop.

        Args:
            name: Task kind, used as the metrics label (e.g., "resync_ttl").
            coro: Coroutine to run.
            **context: Extra fields bound to the failure log line.

        Returns:
            The scheduled asyncio.Task.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks[task] = {"task": name, **context}
        task.add_done_callback(self._handle_task_result)
        return task

    def _handle_task_result(self, task: asyncio.Task[Any]) -> None:
        context = self._tasks.pop(task, {"task": task.get_name()})
        name = context["task"]

        if task.cancelled():
            record_background_task(name, "cancelled")
            logger.debug("background task cancelled", **context)
            return

        exc = task.exception()
        if exc is not None:
            record_background_task(name, "failure")
            logger.warning("background task failed", exc_info=exc, **context)
            return

        record_background_task(name, "success")

    async def wait(self) -> None:
        """
        Wait until every pending task has finished.

        Tasks spawned while waiting are waited for as well. Task failures
        are not raised here; they were already logged.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel(self) -> None:
        """Cancel every pending task and wait for the cancellations to land."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
