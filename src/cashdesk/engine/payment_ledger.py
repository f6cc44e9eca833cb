from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Mapping, Sequence

from ..backend import Backend
from ..exceptions import (
    ApiError,
    InvalidStateError,
    NotSettledError,
    OverpaymentError,
    UnavailableError,
    ValidationError,
)
from ..models import FinalizePayment, FinalizeTransactionRequest, Tab, TenderMethod
from ..money import EPSILON, ZERO, MoneyInput, round2
from ..observability import log_action
from ..validation import parse_amount, validate_adjustments, validate_payment
from .checkout_calculator import CheckoutTotals, compute_balance_due, compute_totals
from .scheduler import FinalizeScheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentEntry:
    tender_method_id: str
    tender_method_name: str
    amount: Decimal
    note: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class CheckoutGroup:
    """Client-held aggregate of the tabs being closed out together.

    ``group_id`` doubles as the idempotency key of the finalize request.
    """

    tabs: list[Tab]
    group_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    service_charge_enabled: bool = True
    surcharge: Decimal = ZERO
    discount: Decimal = ZERO
    split_count: int = 1
    finalizing: bool = False
    finalized: bool = False
    cancelled: bool = False
    transaction_id: str | None = None

    @property
    def consumption_total(self) -> Decimal:
        return round2(sum((tab.consumption_total for tab in self.tabs), ZERO))

    @property
    def tab_ids(self) -> list[str]:
        return [tab.id for tab in self.tabs]

    @property
    def is_active(self) -> bool:
        return not (self.finalized or self.cancelled)


@dataclass(frozen=True)
class FinalizeOutcome:
    group_id: str
    transaction_id: str
    tabs: list[Tab]
    totals: CheckoutTotals
    payments: list[PaymentEntry]


FinalizedCallback = Callable[[FinalizeOutcome], None]
ErrorCallback = Callable[[ApiError], None]


class PaymentLedger:
    """Ordered tender entries for one checkout group.

    Entries live only client-side until :meth:`finalize` submits the whole
    sequence at once, so cancelling before that point needs no remote undo.
    """

    def __init__(
        self,
        backend: Backend,
        group: CheckoutGroup,
        *,
        scheduler: FinalizeScheduler,
        tender_methods: Mapping[str, TenderMethod] | None = None,
        on_finalized: FinalizedCallback | None = None,
        on_auto_finalize_error: ErrorCallback | None = None,
    ) -> None:
        self._backend = backend
        self.group = group
        self._scheduler = scheduler
        self._tender_methods = dict(tender_methods or {})
        self._on_finalized = on_finalized
        self._on_auto_finalize_error = on_auto_finalize_error
        self._entries: list[PaymentEntry] = []
        self._inflight: asyncio.Task[str] | None = None

    @property
    def entries(self) -> list[PaymentEntry]:
        return list(self._entries)

    @property
    def total_paid(self) -> Decimal:
        return round2(sum((entry.amount for entry in self._entries), ZERO))

    @property
    def balance_due(self) -> Decimal:
        return compute_balance_due(self.totals().total_due, self.total_paid)

    @property
    def auto_finalize_pending(self) -> bool:
        return self._scheduler.pending_group_id == self.group.group_id

    def totals(self) -> CheckoutTotals:
        return compute_totals(
            consumption_total=self.group.consumption_total,
            service_charge_enabled=self.group.service_charge_enabled,
            surcharge=self.group.surcharge,
            discount=self.group.discount,
            split_count=self.group.split_count,
            total_paid=self.total_paid,
        )

    def is_settled(self) -> bool:
        return self.balance_due <= EPSILON

    def add_payment(self, tender_method_id: str, amount: MoneyInput, note: str | None = None) -> PaymentEntry:
        self.require_mutable()
        value = parse_amount(amount, "amount")
        validate_payment(tender_method_id, value).raise_for_issues()
        tender_name = self._tender_name(tender_method_id)

        balance = self.balance_due
        if value > balance + EPSILON:
            raise OverpaymentError(
                code="OVERPAYMENT",
                message=f"Payment of {value} exceeds the balance due of {balance}",
                details={"amount": str(value), "balance_due": str(balance)},
            )

        entry = PaymentEntry(
            tender_method_id=tender_method_id,
            tender_method_name=tender_name,
            amount=value,
            note=(note or "").strip() or None,
        )
        self._entries.append(entry)
        # A newer entry supersedes any pending confirmation window.
        self._scheduler.cancel()
        log_action(
            logger,
            "checkout",
            "add_payment",
            "success",
            group_id=self.group.group_id,
            tender_method_id=tender_method_id,
            amount=value,
            balance_due=self.balance_due,
        )
        if self.is_settled():
            self._scheduler.schedule(self.group.group_id, self._auto_finalize)
        return entry

    def update_adjustments(
        self,
        *,
        service_charge_enabled: bool | None = None,
        surcharge: MoneyInput | None = None,
        discount: MoneyInput | None = None,
        split_count: int | None = None,
    ) -> CheckoutTotals:
        self.require_mutable()
        candidate = {
            "service_charge_enabled": (
                self.group.service_charge_enabled if service_charge_enabled is None else service_charge_enabled
            ),
            "surcharge": self.group.surcharge if surcharge is None else parse_amount(surcharge, "surcharge"),
            "discount": self.group.discount if discount is None else parse_amount(discount, "discount"),
            "split_count": self.group.split_count if split_count is None else split_count,
        }
        validate_adjustments(
            surcharge=candidate["surcharge"],
            discount=candidate["discount"],
            split_count=candidate["split_count"],
        ).raise_for_issues()
        preview = compute_totals(consumption_total=self.group.consumption_total, total_paid=self.total_paid, **candidate)
        if preview.total_due < 0:
            raise ValidationError(
                code="NEGATIVE_TOTAL",
                message=f"Discount leaves a negative amount due ({preview.total_due})",
                details={"total_due": str(preview.total_due)},
            )
        self._scheduler.cancel()
        self.group.service_charge_enabled = candidate["service_charge_enabled"]
        self.group.surcharge = candidate["surcharge"]
        self.group.discount = candidate["discount"]
        self.group.split_count = candidate["split_count"]
        return self.totals()

    def replace_tabs(self, tabs: Sequence[Tab]) -> None:
        """Swap in refreshed tab snapshots (after an item cancellation)."""
        self.require_mutable()
        self._scheduler.cancel()
        self.group.tabs = list(tabs)

    async def finalize(self) -> str:
        if self.group.finalized:
            raise InvalidStateError(
                code="CHECKOUT_ALREADY_FINALIZED",
                message="This checkout was already finalized",
                details={"transaction_id": self.group.transaction_id},
            )
        if self.group.cancelled:
            raise InvalidStateError(code="CHECKOUT_CANCELLED", message="This checkout was cancelled")
        if self._inflight is not None:
            return await asyncio.shield(self._inflight)

        totals = self.totals()
        if totals.total_due < 0:
            raise ValidationError(
                code="NEGATIVE_TOTAL",
                message=f"Amount due is negative ({totals.total_due})",
                details={"total_due": str(totals.total_due)},
            )
        if totals.balance_due > EPSILON:
            raise NotSettledError(
                code="NOT_SETTLED",
                message=f"A balance of {totals.balance_due} is still due",
                details={"balance_due": str(totals.balance_due)},
            )

        self._scheduler.cancel()
        self.group.finalizing = True
        self._inflight = asyncio.get_running_loop().create_task(self._submit(totals))
        return await asyncio.shield(self._inflight)

    def cancel(self) -> None:
        if self.group.finalizing:
            raise InvalidStateError(code="CHECKOUT_FINALIZING", message="Checkout is being finalized")
        self._scheduler.cancel()
        self.group.cancelled = True
        self._entries.clear()
        log_action(logger, "checkout", "cancel", "success", group_id=self.group.group_id)

    async def _submit(self, totals: CheckoutTotals) -> str:
        request = FinalizeTransactionRequest(
            tab_ids=self.group.tab_ids,
            service_charge=totals.service_charge,
            surcharge=totals.surcharge,
            discount=totals.discount,
            payments=[
                FinalizePayment(
                    tender_method_id=entry.tender_method_id,
                    tender_method_name=entry.tender_method_name,
                    amount=entry.amount,
                    note=entry.note,
                )
                for entry in self._entries
            ],
        )
        booked = False
        try:
            transaction_id = await self._backend.finalize_transaction(request, self.group.group_id)
            booked = True
        except ApiError as exc:
            self._log_finalize_error(exc)
            raise
        except Exception as exc:
            logger.exception("finalize_unexpected_error", extra={"group_id": self.group.group_id})
            wrapped = UnavailableError(
                code="FINALIZE_FAILED",
                message="Finalize failed unexpectedly; the checkout was kept",
                details={"type": exc.__class__.__name__},
            )
            self._log_finalize_error(wrapped)
            raise wrapped from exc
        finally:
            self._inflight = None
            # also covers cancellation of the in-flight task
            if not booked:
                self.group.finalizing = False

        outcome = FinalizeOutcome(
            group_id=self.group.group_id,
            transaction_id=transaction_id,
            tabs=list(self.group.tabs),
            totals=totals,
            payments=list(self._entries),
        )
        self._teardown(transaction_id)
        log_action(
            logger,
            "checkout",
            "finalize",
            "success",
            group_id=outcome.group_id,
            transaction_id=transaction_id,
            total_due=totals.total_due,
            tabs=len(outcome.tabs),
        )
        if self._on_finalized is not None:
            self._on_finalized(outcome)
        return transaction_id

    def _log_finalize_error(self, exc: ApiError) -> None:
        log_action(
            logger,
            "checkout",
            "finalize",
            "error",
            trace_id=exc.trace_id,
            group_id=self.group.group_id,
            code=exc.code,
        )

    async def _auto_finalize(self) -> None:
        if not self.group.is_active or self.group.finalizing or not self.is_settled():
            return
        try:
            await self.finalize()
        except ApiError as exc:
            logger.warning("auto_finalize_failed", extra={"group_id": self.group.group_id, "code": exc.code})
            if self._on_auto_finalize_error is not None:
                self._on_auto_finalize_error(exc)

    def _teardown(self, transaction_id: str) -> None:
        self.group.finalizing = False
        self.group.finalized = True
        self.group.transaction_id = transaction_id
        self.group.tabs = []
        self._entries.clear()

    def require_mutable(self) -> None:
        if self.group.finalized:
            raise InvalidStateError(code="CHECKOUT_ALREADY_FINALIZED", message="This checkout was already finalized")
        if self.group.cancelled:
            raise InvalidStateError(code="CHECKOUT_CANCELLED", message="This checkout was cancelled")
        if self.group.finalizing:
            raise InvalidStateError(code="CHECKOUT_FINALIZING", message="Checkout is being finalized")

    def set_tender_methods(self, tender_methods: Mapping[str, TenderMethod]) -> None:
        self._tender_methods = dict(tender_methods)

    def _tender_name(self, tender_method_id: str) -> str:
        if not self._tender_methods:
            raise ValidationError(
                code="TENDER_METHODS_UNAVAILABLE",
                message="Tender methods are not loaded; reload them before taking payments",
            )
        method = self._tender_methods.get(tender_method_id)
        if method is None:
            raise ValidationError(
                code="UNKNOWN_TENDER_METHOD",
                message=f"Unknown tender method {tender_method_id}",
                details={"tender_method_id": tender_method_id},
            )
        return method.name
