from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class FinalizeScheduler:
    """One pending delayed finalize, keyed by checkout group id.

    Scheduling again for the same group while a run is pending is a no-op;
    scheduling for another group replaces the pending run.
    """

    def __init__(self, delay_seconds: float) -> None:
        self.delay_seconds = max(0.0, delay_seconds)
        self._task: asyncio.Task[Any] | None = None
        self._group_id: str | None = None
        self._fired: asyncio.Task[Any] | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending_group_id(self) -> str | None:
        return self._group_id if self.pending else None

    def schedule(self, group_id: str, action: Callable[[], Awaitable[Any]]) -> bool:
        if self.pending and self._group_id == group_id:
            return False
        self.cancel()
        self._group_id = group_id
        self._task = asyncio.get_running_loop().create_task(self._run(group_id, action))
        logger.info("auto_finalize_scheduled", extra={"group_id": group_id, "delay": self.delay_seconds})
        return True

    def cancel(self) -> bool:
        task = self._task
        self._task = None
        self._group_id = None
        if task is None or task.done():
            return False
        task.cancel()
        logger.info("auto_finalize_cancelled")
        return True

    async def _run(self, group_id: str, action: Callable[[], Awaitable[Any]]) -> None:
        await asyncio.sleep(self.delay_seconds)
        # Detach before firing so the action may cancel/reschedule freely.
        if self._group_id != group_id:
            return
        self._fired = self._task
        self._task = None
        self._group_id = None
        await action()

    async def drain(self) -> None:
        """Wait for the pending or last fired run to finish."""
        for task in (self._task, self._fired):
            if task is None or task is asyncio.current_task():
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass
