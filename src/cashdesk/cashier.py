from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Sequence

from .backend import Backend, HttpBackend
from .config import ClientConfig
from .engine.checkout_calculator import CheckoutTotals
from .engine.payment_ledger import CheckoutGroup, FinalizeOutcome, PaymentEntry, PaymentLedger
from .engine.print_monitor import PrintQueueMonitor
from .engine.reconciliation import ReconciliationResult
from .engine.scheduler import FinalizeScheduler
from .engine.session_ledger import SessionLedger
from .engine.tab_aggregator import Aggregation, TabAggregator
from .exceptions import ApiError, InvalidStateError, NotFoundError
from .models import (
    CashMovement,
    CashSession,
    ClosedTabDetail,
    ClosedTabSummary,
    GroupedLineItem,
    MovementKind,
    PrintJob,
    Tab,
    TenderMethod,
)
from .money import MoneyInput
from .receipts import (
    BILL_CHECK_JOB,
    PAYMENT_RECEIPT_JOB,
    build_bill_check,
    build_payment_receipt,
    build_receipt_from_detail,
)
from .tracing import TraceContext
from .ui_errors import UserFacingError, to_user_facing_error

logger = logging.getLogger(__name__)

SESSION_SCOPE = "session"
CHECKOUT_SCOPE = "checkout"
PRINT_SCOPE = "print"


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    value: Any = None
    error: UserFacingError | None = None


@dataclass
class CashierState:
    session: CashSession | None = None
    last_closed_session: CashSession | None = None
    last_reconciliation: ReconciliationResult | None = None
    tender_methods: list[TenderMethod] = field(default_factory=list)
    open_tabs: list[Tab] = field(default_factory=list)
    selected_tabs: list[Tab] = field(default_factory=list)
    items: list[GroupedLineItem] = field(default_factory=list)
    failed_tabs: list[str] = field(default_factory=list)
    totals: CheckoutTotals | None = None
    payments: list[PaymentEntry] = field(default_factory=list)
    settled: bool = False
    finalizing: bool = False
    auto_finalize_pending: bool = False
    last_transaction_id: str | None = None
    failed_print_jobs: list[PrintJob] = field(default_factory=list)
    session_error: UserFacingError | None = None
    checkout_error: UserFacingError | None = None
    print_error: UserFacingError | None = None


class CashierDesk:
    """Operator-facing boundary over the cash session and checkout engine.

    Every public operation returns an :class:`OperationResult`; typed engine
    errors are translated into a :class:`UserFacingError` and recorded in the
    matching ``*_error`` slot of :attr:`state`.
    """

    def __init__(
        self,
        backend: Backend,
        *,
        auto_finalize_delay_seconds: float = 1.5,
        print_point_id: int = 3,
        print_poll_seconds: float = 30.0,
        receipt_header: Sequence[str] = (),
    ) -> None:
        self._backend = backend
        self.print_point_id = print_point_id
        self.receipt_header = list(receipt_header)
        self.sessions = SessionLedger(backend)
        self.tabs = TabAggregator(backend)
        self.scheduler = FinalizeScheduler(auto_finalize_delay_seconds)
        self.print_monitor = PrintQueueMonitor(
            backend,
            interval_seconds=print_poll_seconds,
            on_jobs=self._on_failed_print_jobs,
            on_error=self._on_print_error,
        )
        self.state = CashierState()
        self._ledger: PaymentLedger | None = None
        self._background: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        access_token: str | None = None,
        operator_id: str | None = None,
        trace: TraceContext | None = None,
        receipt_header: Sequence[str] = (),
    ) -> CashierDesk:
        backend = HttpBackend(
            config=config,
            access_token=access_token,
            operator_id=operator_id,
            trace=trace or TraceContext(),
        )
        return cls(
            backend,
            auto_finalize_delay_seconds=config.auto_finalize_delay_seconds,
            print_point_id=config.print_point_id,
            print_poll_seconds=config.print_poll_seconds,
            receipt_header=receipt_header,
        )

    @property
    def ledger(self) -> PaymentLedger | None:
        return self._ledger

    # -- lifecycle -------------------------------------------------------

    async def start(self, *, monitor_print_queue: bool = False) -> OperationResult:
        """Load the open session and the tender catalogue concurrently."""
        session_result, tenders_result = await asyncio.gather(
            self.sessions.get_open_session(),
            self._backend.list_tender_methods(True),
            return_exceptions=True,
        )
        for outcome in (session_result, tenders_result):
            if isinstance(outcome, BaseException) and not isinstance(outcome, ApiError):
                raise outcome

        if isinstance(tenders_result, ApiError):
            self._fail(CHECKOUT_SCOPE, tenders_result, "load_tender_methods")
        else:
            self.state.tender_methods = list(tenders_result)
        if isinstance(session_result, ApiError):
            self._fail(SESSION_SCOPE, session_result, "load_session")
        else:
            self.state.session = session_result
            self.state.session_error = None
            if session_result is not None:
                await self.refresh_open_tabs()
        if monitor_print_queue:
            self.print_monitor.start()

        error = self.state.session_error or self.state.checkout_error
        return OperationResult(ok=error is None, value=self.state.session, error=error)

    async def load_tender_methods(self) -> OperationResult:
        try:
            methods = await self._backend.list_tender_methods(True)
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "load_tender_methods")
        self.state.tender_methods = list(methods)
        if self._ledger is not None:
            self._ledger.set_tender_methods({method.id: method for method in methods})
        return self._ok(CHECKOUT_SCOPE, list(methods))

    async def drain(self) -> None:
        """Wait for the pending auto-finalize and background receipt work."""
        await self.scheduler.drain()
        while self._background:
            pending = list(self._background)
            await asyncio.gather(*pending, return_exceptions=True)
            self._background.difference_update(pending)

    async def aclose(self) -> None:
        self.scheduler.cancel()
        await self.print_monitor.stop()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        close = getattr(self._backend, "aclose", None)
        if close is not None:
            await close()

    # -- cash session ----------------------------------------------------

    async def open_session(self, opening_float: MoneyInput) -> OperationResult:
        try:
            session = await self.sessions.open(opening_float)
        except ApiError as exc:
            return self._fail(SESSION_SCOPE, exc, "open_session")
        self.state.session = session
        await self.refresh_open_tabs()
        return self._ok(SESSION_SCOPE, session)

    async def record_movement(self, kind: MovementKind | str, description: str, amount: MoneyInput) -> OperationResult:
        try:
            movement_id = await self.sessions.record_movement(kind, description, amount)
        except ApiError as exc:
            return self._fail(SESSION_SCOPE, exc, "record_movement")
        return self._ok(SESSION_SCOPE, movement_id)

    async def list_movements(self) -> OperationResult:
        try:
            movements: list[CashMovement] = await self.sessions.list_movements()
        except ApiError as exc:
            return self._fail(SESSION_SCOPE, exc, "list_movements")
        return self._ok(SESSION_SCOPE, movements)

    async def close_session(self, counted_amount: MoneyInput, note: str | None = None) -> OperationResult:
        current = self.sessions.current
        session_id = current.id if current is not None else ""
        try:
            if self._ledger is not None and self._ledger.group.finalizing:
                raise InvalidStateError(code="CHECKOUT_FINALIZING", message="Wait for the checkout to finish")
            result = await self.sessions.close(session_id, counted_amount, note)
        except ApiError as exc:
            return self._fail(SESSION_SCOPE, exc, "close_session")
        self.state.session = None
        self.state.last_closed_session = self.sessions.last_closed
        self.state.last_reconciliation = result
        self.state.open_tabs = []
        return self._ok(SESSION_SCOPE, result)

    # -- tab selection ---------------------------------------------------

    async def refresh_open_tabs(self) -> OperationResult:
        try:
            tabs = await self._backend.list_open_tabs()
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "list_open_tabs")
        self.state.open_tabs = list(tabs)
        return OperationResult(ok=True, value=list(tabs))

    async def add_tab(self, number: str) -> OperationResult:
        ledger = self._ledger
        held = ledger.group.tabs if ledger is not None else []
        try:
            self.sessions.require_open()
            if ledger is not None:
                ledger.require_mutable()
            tab = await self.tabs.resolve_by_number(number, held)
            if ledger is not self._ledger:
                raise InvalidStateError(code="CHECKOUT_CHANGED", message="Checkout changed while loading the tab")
            if ledger is None:
                self._ledger = self._new_ledger([tab])
            else:
                ledger.replace_tabs([*ledger.group.tabs, tab])
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "add_tab")
        self._sync_checkout()
        return await self._reload(tab)

    async def remove_tab(self, tab_id: str) -> OperationResult:
        ledger = self._ledger
        try:
            if ledger is None or all(tab.id != tab_id for tab in ledger.group.tabs):
                raise NotFoundError(code="TAB_NOT_SELECTED", message="Tab is not part of this checkout")
            ledger.require_mutable()
            if ledger.entries:
                raise InvalidStateError(
                    code="PAYMENTS_RECORDED",
                    message="Cancel the checkout before removing tabs that already received payments",
                )
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "remove_tab")
        remaining = [tab for tab in ledger.group.tabs if tab.id != tab_id]
        if not remaining:
            return self.cancel_checkout()
        ledger.replace_tabs(remaining)
        self._sync_checkout()
        return await self._reload(tab_id)

    async def reload_tabs(self) -> OperationResult:
        """Re-fetch the items of every held tab, e.g. after a partial load."""
        try:
            self._require_ledger().require_mutable()
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "reload_tabs")
        return await self._reload(list(self.state.failed_tabs))

    async def _reload(self, value: Any) -> OperationResult:
        ledger = self._ledger
        if ledger is None:
            return self._ok(CHECKOUT_SCOPE, value)
        try:
            aggregation = await self.tabs.load(ledger.group.tabs)
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "load_tabs")
        if aggregation is None or ledger is not self._ledger:
            return OperationResult(ok=True, value=value)
        self._apply_aggregation(aggregation)
        partial = aggregation.partial_error
        if partial is not None:
            self.state.checkout_error = to_user_facing_error(partial)
            return OperationResult(ok=True, value=value, error=self.state.checkout_error)
        return self._ok(CHECKOUT_SCOPE, value)

    def _apply_aggregation(self, aggregation: Aggregation) -> None:
        self.state.items = list(aggregation.items)
        self.state.failed_tabs = list(aggregation.failed_tabs)
        self._sync_checkout()

    async def cancel_line_item(self, item_id: str, reason: str) -> OperationResult:
        ledger = self._ledger
        try:
            if ledger is None:
                raise InvalidStateError(code="NO_ACTIVE_CHECKOUT", message="No checkout is active")
            ledger.require_mutable()
            owner = next((entry for entry in self.state.items if entry.item.id == item_id), None)
            if owner is None:
                raise NotFoundError(code="ITEM_NOT_FOUND", message=f"Item {item_id} is not in this checkout")
            await self._backend.cancel_line_item(item_id, reason)
            refreshed = await self._backend.resolve_tab_by_number(owner.tab_number)
            if ledger is not self._ledger:
                raise InvalidStateError(code="CHECKOUT_CHANGED", message="Checkout changed while cancelling the item")
            if not refreshed.is_open:
                raise InvalidStateError(
                    code="TAB_NOT_OPEN",
                    message=f"Tab {refreshed.number} is {refreshed.status.value} and can no longer be checked out",
                    details={"tab_number": refreshed.number, "status": refreshed.status.value},
                )
            ledger.replace_tabs([refreshed if tab.id == refreshed.id else tab for tab in ledger.group.tabs])
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "cancel_line_item")
        self._sync_checkout()
        return await self._reload(item_id)

    # -- checkout --------------------------------------------------------

    def update_adjustments(
        self,
        *,
        service_charge_enabled: bool | None = None,
        surcharge: MoneyInput | None = None,
        discount: MoneyInput | None = None,
        split_count: int | None = None,
    ) -> OperationResult:
        try:
            ledger = self._require_ledger()
            totals = ledger.update_adjustments(
                service_charge_enabled=service_charge_enabled,
                surcharge=surcharge,
                discount=discount,
                split_count=split_count,
            )
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "update_adjustments")
        self._sync_checkout()
        return self._ok(CHECKOUT_SCOPE, totals)

    def add_payment(self, tender_method_id: str, amount: MoneyInput, note: str | None = None) -> OperationResult:
        try:
            entry = self._require_ledger().add_payment(tender_method_id, amount, note)
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "add_payment")
        self._sync_checkout()
        return self._ok(CHECKOUT_SCOPE, entry)

    async def finalize(self) -> OperationResult:
        try:
            ledger = self._require_ledger()
            transaction_id = await ledger.finalize()
        except ApiError as exc:
            self._sync_checkout()
            return self._fail(CHECKOUT_SCOPE, exc, "finalize")
        return self._ok(CHECKOUT_SCOPE, transaction_id)

    def cancel_checkout(self) -> OperationResult:
        try:
            ledger = self._require_ledger()
            ledger.cancel()
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "cancel_checkout")
        self._ledger = None
        self.tabs.invalidate()
        self._clear_checkout()
        return self._ok(CHECKOUT_SCOPE, None)

    def _require_ledger(self) -> PaymentLedger:
        if self._ledger is None:
            raise InvalidStateError(code="NO_ACTIVE_CHECKOUT", message="Select a tab to start a checkout")
        return self._ledger

    def _new_ledger(self, tabs: list[Tab]) -> PaymentLedger:
        return PaymentLedger(
            self._backend,
            CheckoutGroup(tabs=tabs),
            scheduler=self.scheduler,
            tender_methods={method.id: method for method in self.state.tender_methods},
            on_finalized=self._on_finalized,
            on_auto_finalize_error=self._on_auto_finalize_error,
        )

    def _on_finalized(self, outcome: FinalizeOutcome) -> None:
        items = list(self.state.items)
        freed = {tab.id for tab in outcome.tabs}
        self._ledger = None
        self.tabs.invalidate()
        self._clear_checkout()
        self.state.last_transaction_id = outcome.transaction_id
        self.state.open_tabs = [tab for tab in self.state.open_tabs if tab.id not in freed]
        self.state.checkout_error = None
        self._spawn(self._after_finalize(outcome, items))

    def _on_auto_finalize_error(self, exc: ApiError) -> None:
        self._sync_checkout()
        self.state.checkout_error = to_user_facing_error(exc)

    async def _after_finalize(self, outcome: FinalizeOutcome, items: list[GroupedLineItem]) -> None:
        payload = build_payment_receipt(outcome, items, header=self.receipt_header)
        await self._submit_print(PAYMENT_RECEIPT_JOB, payload)
        await self.refresh_open_tabs()

    def _sync_checkout(self) -> None:
        ledger = self._ledger
        if ledger is None:
            self._clear_checkout()
            return
        self.state.selected_tabs = list(ledger.group.tabs)
        self.state.totals = ledger.totals()
        self.state.payments = ledger.entries
        self.state.settled = ledger.is_settled()
        self.state.finalizing = ledger.group.finalizing
        self.state.auto_finalize_pending = ledger.auto_finalize_pending

    def _clear_checkout(self) -> None:
        self.state.selected_tabs = []
        self.state.items = []
        self.state.failed_tabs = []
        self.state.totals = None
        self.state.payments = []
        self.state.settled = False
        self.state.finalizing = False
        self.state.auto_finalize_pending = False

    # -- closed tabs -----------------------------------------------------

    async def list_closed_tabs(self, start: date, end: date) -> OperationResult:
        try:
            rows: list[ClosedTabSummary] = await self._backend.list_closed_tabs(start, end)
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "list_closed_tabs")
        return self._ok(CHECKOUT_SCOPE, rows)

    async def get_closed_tab_detail(self, number: str) -> OperationResult:
        try:
            detail: ClosedTabDetail = await self._backend.get_closed_tab_detail(number)
        except ApiError as exc:
            return self._fail(CHECKOUT_SCOPE, exc, "get_closed_tab_detail")
        return self._ok(CHECKOUT_SCOPE, detail)

    # -- printing --------------------------------------------------------

    async def print_bill(self) -> OperationResult:
        try:
            ledger = self._require_ledger()
        except ApiError as exc:
            return self._fail(PRINT_SCOPE, exc, "print_bill")
        payload = build_bill_check(
            ledger.group.tabs,
            self.state.items,
            ledger.totals(),
            service_charge_enabled=ledger.group.service_charge_enabled,
            header=self.receipt_header,
        )
        return await self._submit_print(BILL_CHECK_JOB, payload)

    async def reprint_receipt(self, number: str) -> OperationResult:
        try:
            detail = await self._backend.get_closed_tab_detail(number)
        except ApiError as exc:
            return self._fail(PRINT_SCOPE, exc, "reprint_receipt")
        payload = build_receipt_from_detail(detail, header=self.receipt_header)
        return await self._submit_print(PAYMENT_RECEIPT_JOB, payload)

    async def retry_print_job(self, job_id: str) -> OperationResult:
        if await self.print_monitor.retry(job_id):
            return self._ok(PRINT_SCOPE, job_id)
        return OperationResult(ok=False, error=self.state.print_error)

    async def _submit_print(self, job_type: str, payload: dict[str, Any]) -> OperationResult:
        try:
            job_id = await self._backend.submit_print_job(self.print_point_id, job_type, payload)
        except ApiError as exc:
            return self._fail(PRINT_SCOPE, exc, job_type)
        logger.info("print_job_submitted", extra={"job_id": job_id, "job_type": job_type})
        return self._ok(PRINT_SCOPE, job_id)

    def _on_failed_print_jobs(self, jobs: list[PrintJob]) -> None:
        self.state.failed_print_jobs = jobs

    def _on_print_error(self, exc: ApiError) -> None:
        self.state.print_error = to_user_facing_error(exc)

    # -- plumbing --------------------------------------------------------

    def _spawn(self, work: Awaitable[None]) -> None:
        task = asyncio.ensure_future(work)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _ok(self, scope: str, value: Any) -> OperationResult:
        setattr(self.state, f"{scope}_error", None)
        return OperationResult(ok=True, value=value)

    def _fail(self, scope: str, exc: Exception, action: str) -> OperationResult:
        error = to_user_facing_error(exc)
        setattr(self.state, f"{scope}_error", error)
        logger.warning(
            "cashier_operation_failed",
            extra={"scope": scope, "action": action, "code": error.code, "trace_id": error.trace_id},
        )
        return OperationResult(ok=False, error=error)
