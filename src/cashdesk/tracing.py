from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Mapping

TRACE_HEADER = "X-Trace-ID"


@dataclass
class TraceContext:
    """Correlates the requests of one operator flow (a checkout, a close)."""

    trace_id: str | None = None

    def ensure(self) -> str:
        self.trace_id = self.trace_id or uuid.uuid4().hex
        return self.trace_id

    def _adopt(self, candidate: object) -> None:
        if isinstance(candidate, str) and candidate:
            self.trace_id = candidate

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        # httpx.Headers lookups are case-insensitive
        self._adopt(headers.get(TRACE_HEADER))

    def update_from_payload(self, payload: Mapping[str, object]) -> None:
        self._adopt(payload.get("trace_id"))
