from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Protocol

from .clients import PrintClient, SessionsClient, TabsClient, TenderClient, TransactionsClient
from .config import ClientConfig
from .http_client import HttpClient
from .models import (
    CashMovement,
    CashSession,
    ClosedTabDetail,
    ClosedTabSummary,
    FinalizeTransactionRequest,
    LineItem,
    MovementKind,
    PrintJob,
    SessionCloseResponse,
    Tab,
    TenderMethod,
)
from .tracing import TraceContext


class Backend(Protocol):
    """Everything the engine needs from the register's backend service."""

    async def get_open_session(self) -> CashSession | None: ...

    async def open_session(self, opening_float: Decimal) -> CashSession: ...

    async def close_session(
        self, session_id: str, counted_amount: Decimal, note: str | None = None
    ) -> SessionCloseResponse: ...

    async def record_cash_movement(self, kind: MovementKind, description: str, amount: Decimal) -> str: ...

    async def list_session_movements(self, session_id: str) -> list[CashMovement]: ...

    async def resolve_tab_by_number(self, number: str) -> Tab: ...

    async def list_open_tabs(self) -> list[Tab]: ...

    async def list_tab_items(self, tab_id: str) -> list[LineItem]: ...

    async def list_tender_methods(self, active_only: bool = True) -> list[TenderMethod]: ...

    async def finalize_transaction(self, request: FinalizeTransactionRequest, idempotency_key: str) -> str: ...

    async def cancel_line_item(self, item_id: str, reason: str) -> None: ...

    async def list_closed_tabs(self, start: date, end: date) -> list[ClosedTabSummary]: ...

    async def get_closed_tab_detail(self, number: str) -> ClosedTabDetail: ...

    async def submit_print_job(self, point_id: int, job_type: str, payload: Mapping[str, Any]) -> str: ...

    async def list_failed_print_jobs(self) -> list[PrintJob]: ...

    async def retry_print_job(self, job_id: str) -> None: ...


@dataclass
class HttpBackend:
    config: ClientConfig
    access_token: str | None = None
    operator_id: str | None = None
    trace: TraceContext = field(default_factory=TraceContext)
    http: HttpClient | None = None

    def __post_init__(self) -> None:
        self.http = self.http or HttpClient(config=self.config, trace=self.trace)
        common = {"http": self.http, "access_token": self.access_token, "operator_id": self.operator_id}
        self.sessions = SessionsClient(**common)
        self.tabs = TabsClient(**common)
        self.tenders = TenderClient(**common)
        self.transactions = TransactionsClient(**common)
        self.printing = PrintClient(**common)

    async def aclose(self) -> None:
        if self.http is not None:
            await self.http.aclose()

    async def get_open_session(self) -> CashSession | None:
        return await self.sessions.get_open_session()

    async def open_session(self, opening_float: Decimal) -> CashSession:
        return await self.sessions.open_session(opening_float)

    async def close_session(
        self, session_id: str, counted_amount: Decimal, note: str | None = None
    ) -> SessionCloseResponse:
        return await self.sessions.close_session(session_id, counted_amount, note)

    async def record_cash_movement(self, kind: MovementKind, description: str, amount: Decimal) -> str:
        return await self.sessions.record_cash_movement(kind, description, amount)

    async def list_session_movements(self, session_id: str) -> list[CashMovement]:
        return await self.sessions.list_session_movements(session_id)

    async def resolve_tab_by_number(self, number: str) -> Tab:
        return await self.tabs.resolve_tab_by_number(number)

    async def list_open_tabs(self) -> list[Tab]:
        return await self.tabs.list_open_tabs()

    async def list_tab_items(self, tab_id: str) -> list[LineItem]:
        return await self.tabs.list_tab_items(tab_id)

    async def list_tender_methods(self, active_only: bool = True) -> list[TenderMethod]:
        return await self.tenders.list_tender_methods(active_only)

    async def finalize_transaction(self, request: FinalizeTransactionRequest, idempotency_key: str) -> str:
        return await self.transactions.finalize_transaction(request, idempotency_key)

    async def cancel_line_item(self, item_id: str, reason: str) -> None:
        await self.tabs.cancel_line_item(item_id, reason)

    async def list_closed_tabs(self, start: date, end: date) -> list[ClosedTabSummary]:
        return await self.tabs.list_closed_tabs(start, end)

    async def get_closed_tab_detail(self, number: str) -> ClosedTabDetail:
        return await self.tabs.get_closed_tab_detail(number)

    async def submit_print_job(self, point_id: int, job_type: str, payload: Mapping[str, Any]) -> str:
        return await self.printing.submit_print_job(point_id, job_type, payload)

    async def list_failed_print_jobs(self) -> list[PrintJob]:
        return await self.printing.list_failed_jobs()

    async def retry_print_job(self, job_id: str) -> None:
        await self.printing.retry_job(job_id)
