from __future__ import annotations

import asyncio

from cashdesk.engine.print_monitor import PrintQueueMonitor
from cashdesk.exceptions import ApiError, TransportError
from cashdesk.models import PrintJob
from fakes import FakeBackend


def _job(job_id: str) -> PrintJob:
    return PrintJob(id=job_id, point_id=3, job_type="payment_receipt", status="FAILED", error="paper out")


def test_poll_publishes_failed_jobs() -> None:
    backend = FakeBackend()
    backend.failed_jobs = [_job("8")]
    published: list[list[PrintJob]] = []
    monitor = PrintQueueMonitor(backend, interval_seconds=30, on_jobs=published.append)

    jobs = asyncio.run(monitor.poll_once())

    assert jobs is not None
    assert [job.id for job in jobs] == ["8"]
    assert [[job.id for job in batch] for batch in published] == [["8"]]


def test_poll_failure_is_reported_not_raised() -> None:
    backend = FakeBackend()
    backend.failed_jobs_error = TransportError(code="TRANSPORT_ERROR", message="offline")
    errors: list[ApiError] = []
    monitor = PrintQueueMonitor(backend, interval_seconds=30, on_error=errors.append)

    assert asyncio.run(monitor.poll_once()) is None
    assert [error.code for error in errors] == ["TRANSPORT_ERROR"]


def test_retry_refreshes_failed_jobs() -> None:
    backend = FakeBackend()
    backend.failed_jobs = [_job("8"), _job("9")]
    monitor = PrintQueueMonitor(backend, interval_seconds=30)

    assert asyncio.run(monitor.retry("8")) is True
    assert backend.retried_jobs == ["8"]
    assert [job.id for job in monitor.failed_jobs] == ["9"]


def test_start_and_stop_polling_loop() -> None:
    async def scenario() -> None:
        backend = FakeBackend()
        backend.failed_jobs = [_job("8")]
        published: list[list[PrintJob]] = []
        monitor = PrintQueueMonitor(backend, interval_seconds=0.01, on_jobs=published.append)

        monitor.start()
        monitor.start()
        await asyncio.sleep(0.05)
        await monitor.stop()
        count = len(published)
        await asyncio.sleep(0.03)

        assert count >= 2
        assert len(published) == count
        assert not monitor.running

    asyncio.run(scenario())


class _FlakyPrintBackend(FakeBackend):
    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures

    async def list_failed_print_jobs(self) -> list[PrintJob]:
        if self.failures:
            self.failures -= 1
            raise RuntimeError("decoder bug")
        return await super().list_failed_print_jobs()


def test_loop_survives_unexpected_poll_errors() -> None:
    async def scenario() -> None:
        backend = _FlakyPrintBackend(failures=2)
        backend.failed_jobs = [_job("8")]
        published: list[list[PrintJob]] = []
        errors: list[ApiError] = []
        monitor = PrintQueueMonitor(
            backend, interval_seconds=0.01, on_jobs=published.append, on_error=errors.append
        )

        monitor.start()
        await asyncio.sleep(0.08)
        assert monitor.running
        await monitor.stop()

        assert [error.code for error in errors] == ["PRINT_POLL_FAILED", "PRINT_POLL_FAILED"]
        assert published and [job.id for job in published[-1]] == ["8"]

    asyncio.run(scenario())
