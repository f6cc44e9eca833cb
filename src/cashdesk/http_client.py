from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import ApiError, ResponseFormatError, TransportError
from .tracing import TRACE_HEADER, TraceContext

logger = logging.getLogger(__name__)

JsonPayload = dict[str, Any] | list[Any] | None

# Only reads are replayed; money-moving calls rely on idempotency keys instead.
SAFE_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True)
class CallRecord:
    module: str
    operation: str
    method: str
    attempts: int
    duration_ms: int
    status_code: int
    trace_id: str | None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class HttpClient:
    """Async JSON transport shared by the resource clients.

    Pass ``transport`` to route requests somewhere other than the network
    (``httpx.MockTransport`` in tests).
    """

    config: ClientConfig
    trace: TraceContext = field(default_factory=TraceContext)
    transport: httpx.AsyncBaseTransport | None = None
    last_call: CallRecord | None = None
    _client: httpx.AsyncClient | None = field(default=None, repr=False)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self.config.api_base_url.rstrip('/')}/",
                timeout=httpx.Timeout(
                    self.config.read_timeout_seconds,
                    connect=self.config.connect_timeout_seconds,
                ),
                limits=httpx.Limits(max_connections=self.config.max_connections),
                verify=self.config.verify_ssl,
                transport=self.transport,
            )
        return self._client

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        module: str = "unknown",
        operation: str = "unknown",
    ) -> JsonPayload:
        verb = method.upper()
        outgoing = {"Accept": "application/json", **(headers or {}), TRACE_HEADER: self.trace.ensure()}
        max_attempts = 1 + self.config.retries if verb in SAFE_METHODS else 1
        started = time.monotonic()

        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self._http().request(
                    verb,
                    path.lstrip("/"),
                    headers=outgoing,
                    json=json_body,
                    params=params,
                )
            except httpx.HTTPError as exc:
                if attempt >= max_attempts:
                    self._remember(module, operation, verb, attempt, started, 0)
                    raise TransportError(
                        code="TRANSPORT_ERROR",
                        message=str(exc) or exc.__class__.__name__,
                        details={"type": exc.__class__.__name__, "attempts": attempt},
                        trace_id=self.trace.trace_id,
                    ) from exc
                reason = exc.__class__.__name__
            else:
                if response.status_code < 500 or attempt >= max_attempts:
                    break
                reason = f"HTTP {response.status_code}"
            delay = self.config.retry_backoff_seconds * 2 ** (attempt - 1)
            logger.warning(
                "request_retry",
                extra={"operation": operation, "attempt": attempt, "reason": reason, "delay": delay},
            )
            await asyncio.sleep(delay)

        self.trace.update_from_headers(response.headers)
        self._remember(module, operation, verb, attempt, started, response.status_code)
        if response.is_success:
            return self._decode_success(response)
        raise self._decode_failure(response)

    def _decode_success(self, response: httpx.Response) -> JsonPayload:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ResponseFormatError(
                code="INVALID_JSON",
                message="Backend returned a body that is not JSON",
                trace_id=self.trace.trace_id,
                status_code=response.status_code,
            ) from exc

    def _decode_failure(self, response: httpx.Response) -> ApiError:
        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text or response.reason_phrase}
        payload = body if isinstance(body, dict) else {"details": body}
        self.trace.update_from_payload(payload)
        return map_error(response.status_code, payload, self.trace.trace_id)

    def _remember(
        self, module: str, operation: str, method: str, attempts: int, started: float, status_code: int
    ) -> None:
        self.last_call = CallRecord(
            module=module,
            operation=operation,
            method=method,
            attempts=attempts,
            duration_ms=int((time.monotonic() - started) * 1000),
            status_code=status_code,
            trace_id=self.trace.trace_id,
        )
