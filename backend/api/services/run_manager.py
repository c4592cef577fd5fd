"""Background task manager for in-flight illustration runs."""

import asyncio
import logging
from typing import Coroutine

logger = logging.getLogger(__name__)


class RunManager:
    """Keeps illustration run tasks alive until they finish, and cancels them on shutdown."""

    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    def start(self, run_id: str, coro: Coroutine) -> asyncio.Task:
        """
        Start a run in the background.

        Args:
            run_id: Unique identifier for the run
            coro: The run coroutine
        """
        task = asyncio.create_task(coro, name=f"illustration-run-{run_id}")
        self._tasks[run_id] = task

        # Clean up finished task when done
        def cleanup(t: asyncio.Task):
            self._tasks.pop(run_id, None)
            if not t.cancelled() and t.exception() is not None:
                logger.error(f"Illustration run {run_id} crashed", exc_info=t.exception())

        task.add_done_callback(cleanup)
        return task

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Wait briefly for running runs, then cancel whatever is left."""
        tasks = list(self._tasks.values())
        if not tasks:
            return

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Cancelled {len(pending)} illustration run(s) on shutdown")
            await asyncio.gather(*pending, return_exceptions=True)


# Global instance
run_manager = RunManager()
