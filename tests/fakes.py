from __future__ import annotations

import asyncio
import itertools
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

from cashdesk.exceptions import ApiError, ConflictError, NotFoundError
from cashdesk.models import (
    CashMovement,
    CashSession,
    ClosedTabDetail,
    ClosedTabSummary,
    FinalizeTransactionRequest,
    LineItem,
    LineItemStatus,
    MovementKind,
    PrintJob,
    SessionCloseResponse,
    SessionStatus,
    Tab,
    TabStatus,
    TenderMethod,
)


def make_tab(number: str, total: str, status: str = "OPEN", customer_name: str | None = None) -> Tab:
    return Tab(
        id=f"tab-{number}",
        number=number,
        status=status,
        customer_name=customer_name,
        consumption_total=Decimal(total),
    )


def make_item(tab: Tab, item_id: str, name: str, quantity: str, price: str, status: str = "ACTIVE") -> LineItem:
    return LineItem(
        id=item_id,
        tab_id=tab.id,
        product_name=name,
        quantity=Decimal(quantity),
        unit_price_at_order_time=Decimal(price),
        status=status,
    )


def default_tenders() -> list[TenderMethod]:
    return [
        TenderMethod(id="cash", name="Cash", kind="CASH"),
        TenderMethod(id="credit", name="Credit card", kind="CREDIT_CARD"),
        TenderMethod(id="pix", name="Pix", kind="PIX"),
    ]


class FakeBackend:
    """In-memory backend; failures and pauses are injected per call."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.session: CashSession | None = None
        self.movements: list[CashMovement] = []
        self.tabs: dict[str, Tab] = {}
        self.items: dict[str, list[LineItem]] = {}
        self.tender_methods: list[TenderMethod] = default_tenders()
        self.item_errors: dict[str, ApiError] = {}
        self.item_gates: dict[str, asyncio.Event] = {}
        self.session_error: ApiError | None = None
        self.tender_error: ApiError | None = None
        self.expected_amount: Decimal | None = None
        self.finalize_calls: list[tuple[FinalizeTransactionRequest, str]] = []
        self.finalize_errors: list[Exception] = []
        self.finalize_gate: asyncio.Event | None = None
        self.transactions: dict[str, str] = {}
        self.closed_tabs: list[ClosedTabSummary] = []
        self.closed_details: dict[str, ClosedTabDetail] = {}
        self.print_jobs: list[tuple[int, str, dict[str, Any]]] = []
        self.print_error: ApiError | None = None
        self.failed_jobs: list[PrintJob] = []
        self.failed_jobs_error: ApiError | None = None
        self.retried_jobs: list[str] = []
        self.cancelled_items: list[tuple[str, str]] = []
        self.calls: list[str] = []

    def add_tab(self, tab: Tab, items: list[LineItem] | None = None) -> Tab:
        self.tabs[tab.number] = tab
        self.items[tab.id] = list(items or [])
        return tab

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    async def get_open_session(self) -> CashSession | None:
        self.calls.append("get_open_session")
        if self.session_error is not None:
            raise self.session_error
        if self.session is not None and self.session.is_open:
            return self.session
        return None

    async def open_session(self, opening_float: Decimal) -> CashSession:
        self.calls.append("open_session")
        if self.session is not None and self.session.is_open:
            raise ConflictError(code="SESSION_ALREADY_OPEN", message="A cash session is already open", status_code=409)
        self.session = CashSession(
            id=self._next_id("session"),
            operator_id="op-1",
            opened_at=datetime.now(timezone.utc),
            opening_float=opening_float,
            status=SessionStatus.OPEN,
        )
        self.movements = []
        return self.session

    async def close_session(
        self, session_id: str, counted_amount: Decimal, note: str | None = None
    ) -> SessionCloseResponse:
        self.calls.append("close_session")
        if self.session is None or self.session.id != session_id or not self.session.is_open:
            raise ConflictError(code="SESSION_ALREADY_CLOSED", message="Session already closed", status_code=409)
        expected = self.expected_amount if self.expected_amount is not None else self._expected_cash()
        closed = self.session.model_copy(
            update={
                "status": SessionStatus.CLOSED,
                "counted_amount": counted_amount,
                "expected_amount": expected,
                "discrepancy": counted_amount - expected,
                "closed_at": datetime.now(timezone.utc),
                "note": note,
            }
        )
        self.session = closed
        return SessionCloseResponse(session=closed, expected_amount=expected)

    def _expected_cash(self) -> Decimal:
        assert self.session is not None
        total = self.session.opening_float
        for movement in self.movements:
            if movement.kind is MovementKind.CASH_IN:
                total += movement.amount
            else:
                total -= movement.amount
        return total

    async def record_cash_movement(self, kind: MovementKind, description: str, amount: Decimal) -> str:
        self.calls.append("record_cash_movement")
        assert self.session is not None
        movement = CashMovement(
            id=self._next_id("movement"),
            session_id=self.session.id,
            kind=kind,
            description=description,
            amount=amount,
            timestamp=datetime.now(timezone.utc),
        )
        self.movements.append(movement)
        return movement.id

    async def list_session_movements(self, session_id: str) -> list[CashMovement]:
        self.calls.append("list_session_movements")
        return [movement for movement in self.movements if movement.session_id == session_id]

    async def resolve_tab_by_number(self, number: str) -> Tab:
        self.calls.append(f"resolve_tab_by_number:{number}")
        tab = self.tabs.get(number)
        if tab is None:
            raise NotFoundError(code="TAB_NOT_FOUND", message=f"Tab {number} not found", status_code=404)
        return tab

    async def list_open_tabs(self) -> list[Tab]:
        self.calls.append("list_open_tabs")
        return [tab for tab in self.tabs.values() if tab.status is TabStatus.OPEN]

    async def list_tab_items(self, tab_id: str) -> list[LineItem]:
        self.calls.append(f"list_tab_items:{tab_id}")
        gate = self.item_gates.get(tab_id)
        if gate is not None:
            await gate.wait()
        error = self.item_errors.get(tab_id)
        if error is not None:
            raise error
        return list(self.items.get(tab_id, []))

    async def list_tender_methods(self, active_only: bool = True) -> list[TenderMethod]:
        self.calls.append("list_tender_methods")
        if self.tender_error is not None:
            raise self.tender_error
        return [method for method in self.tender_methods if method.active or not active_only]

    async def finalize_transaction(self, request: FinalizeTransactionRequest, idempotency_key: str) -> str:
        self.finalize_calls.append((request, idempotency_key))
        if self.finalize_gate is not None:
            await self.finalize_gate.wait()
        if self.finalize_errors:
            raise self.finalize_errors.pop(0)
        if idempotency_key not in self.transactions:
            self.transactions[idempotency_key] = self._next_id("txn")
            for tab in list(self.tabs.values()):
                if tab.id in request.tab_ids:
                    self.tabs[tab.number] = tab.model_copy(update={"status": TabStatus.PAID})
        return self.transactions[idempotency_key]

    async def cancel_line_item(self, item_id: str, reason: str) -> None:
        self.cancelled_items.append((item_id, reason))
        for tab_id, items in self.items.items():
            for index, item in enumerate(items):
                if item.id != item_id:
                    continue
                items[index] = item.model_copy(update={"status": LineItemStatus.CANCELLED})
                for number, tab in self.tabs.items():
                    if tab.id == tab_id:
                        self.tabs[number] = tab.model_copy(
                            update={"consumption_total": tab.consumption_total - item.line_total}
                        )
                return
        raise NotFoundError(code="ITEM_NOT_FOUND", message=f"Item {item_id} not found", status_code=404)

    async def list_closed_tabs(self, start: date, end: date) -> list[ClosedTabSummary]:
        self.calls.append("list_closed_tabs")
        return list(self.closed_tabs)

    async def get_closed_tab_detail(self, number: str) -> ClosedTabDetail:
        self.calls.append(f"get_closed_tab_detail:{number}")
        detail = self.closed_details.get(number)
        if detail is None:
            raise NotFoundError(code="TAB_NOT_FOUND", message=f"Closed tab {number} not found", status_code=404)
        return detail

    async def submit_print_job(self, point_id: int, job_type: str, payload: Mapping[str, Any]) -> str:
        if self.print_error is not None:
            raise self.print_error
        self.print_jobs.append((point_id, job_type, dict(payload)))
        return self._next_id("job")

    async def list_failed_print_jobs(self) -> list[PrintJob]:
        if self.failed_jobs_error is not None:
            raise self.failed_jobs_error
        return list(self.failed_jobs)

    async def retry_print_job(self, job_id: str) -> None:
        self.retried_jobs.append(job_id)
        self.failed_jobs = [job for job in self.failed_jobs if job.id != job_id]
