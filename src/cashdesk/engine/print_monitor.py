from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..backend import Backend
from ..exceptions import ApiError, UnavailableError
from ..models import PrintJob
from ..observability import log_action

logger = logging.getLogger(__name__)

JobsCallback = Callable[[list[PrintJob]], None]
ErrorCallback = Callable[[ApiError], None]


class PrintQueueMonitor:
    """Periodically surfaces failed print jobs.

    Printing is an external sink: poll and retry failures are reported
    through ``on_error`` and never propagate to the caller.
    """

    def __init__(
        self,
        backend: Backend,
        *,
        interval_seconds: float,
        on_jobs: JobsCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._backend = backend
        self.interval_seconds = max(0.0, interval_seconds)
        self._on_jobs = on_jobs
        self._on_error = on_error
        self._task: asyncio.Task[None] | None = None
        self.failed_jobs: list[PrintJob] = []

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def poll_once(self) -> list[PrintJob] | None:
        try:
            jobs = await self._backend.list_failed_print_jobs()
        except ApiError as exc:
            self._report("poll", exc)
            return None
        self.failed_jobs = list(jobs)
        if self.failed_jobs:
            logger.warning("failed_print_jobs", extra={"count": len(self.failed_jobs)})
        if self._on_jobs is not None:
            self._on_jobs(list(self.failed_jobs))
        return self.failed_jobs

    async def retry(self, job_id: str) -> bool:
        try:
            await self._backend.retry_print_job(job_id)
        except ApiError as exc:
            self._report("retry", exc, job_id=job_id)
            return False
        log_action(logger, "print_queue", "retry", "success", job_id=job_id)
        await self.poll_once()
        return True

    async def _loop(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception as exc:
                logger.exception("print_poll_crashed")
                self._report(
                    "poll",
                    UnavailableError(
                        code="PRINT_POLL_FAILED",
                        message="Could not check the print queue",
                        details={"type": exc.__class__.__name__},
                    ),
                )
            await asyncio.sleep(self.interval_seconds)

    def _report(self, action: str, exc: ApiError, **context: object) -> None:
        log_action(logger, "print_queue", action, "error", trace_id=exc.trace_id, code=exc.code, **context)
        if self._on_error is not None:
            self._on_error(exc)
