from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ..idempotency import idempotency_headers
from ..models import PrintJob, PrintJobAccepted, PrintJobStatus
from .base import BaseClient, parse_list, parse_model


@dataclass
class PrintClient(BaseClient):
    module: str = "print_queue"

    async def submit_print_job(
        self,
        point_id: int,
        job_type: str,
        payload: Mapping[str, Any],
        idempotency_key: str | None = None,
    ) -> str:
        data = await self._request(
            "POST",
            "/print/jobs",
            json_body={"point_id": point_id, "job_type": job_type, "payload": dict(payload)},
            headers=idempotency_headers(idempotency_key),
            operation="submit_print_job",
        )
        return parse_model(PrintJobAccepted, data, "print job").job_id

    async def list_failed_jobs(self) -> list[PrintJob]:
        data = await self._request(
            "GET",
            "/print/jobs",
            params={"status": PrintJobStatus.FAILED.value},
            operation="list_failed_jobs",
        )
        return parse_list(PrintJob, data, "print jobs")

    async def retry_job(self, job_id: str) -> None:
        await self._request("POST", f"/print/jobs/{job_id}/retry", operation="retry_job")
