from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


class SessionStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class MovementKind(str, Enum):
    CASH_IN = "CASH_IN"
    CASH_OUT = "CASH_OUT"
    EXPENSE = "EXPENSE"


class TabStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class LineItemStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


class TenderKind(str, Enum):
    CASH = "CASH"
    DEBIT_CARD = "DEBIT_CARD"
    CREDIT_CARD = "CREDIT_CARD"
    PIX = "PIX"
    VOUCHER = "VOUCHER"
    OTHER = "OTHER"


class PrintJobStatus(str, Enum):
    PENDING = "PENDING"
    PRINTED = "PRINTED"
    FAILED = "FAILED"


def _upper(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


def _stringify(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Identifier = Annotated[str, BeforeValidator(_stringify)]


class _WireModel(BaseModel):
    """Backend payloads: extra keys tolerated, statuses validated strictly."""

    model_config = ConfigDict(extra="ignore", frozen=True)


class CashSession(_WireModel):
    id: Identifier
    operator_id: Identifier | None = None
    opened_at: datetime | None = None
    opening_float: Decimal
    status: Annotated[SessionStatus, BeforeValidator(_upper)]
    closing_operator_id: Identifier | None = None
    counted_amount: Decimal | None = None
    expected_amount: Decimal | None = None
    discrepancy: Decimal | None = None
    closed_at: datetime | None = None
    note: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status is SessionStatus.OPEN


class CashSessionEnvelope(_WireModel):
    session: CashSession | None = None


class SessionCloseResponse(_WireModel):
    session: CashSession
    expected_amount: Decimal


class CashMovement(_WireModel):
    id: Identifier
    session_id: Identifier
    kind: Annotated[MovementKind, BeforeValidator(_upper)]
    description: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    timestamp: datetime | None = None
    operator_id: str | None = None


class MovementCreated(_WireModel):
    movement_id: Identifier


class Tab(_WireModel):
    id: Identifier
    number: Identifier
    status: Annotated[TabStatus, BeforeValidator(_upper)]
    customer_name: str | None = None
    consumption_total: Decimal = Decimal("0.00")
    opened_at: datetime | None = None
    closed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status is TabStatus.OPEN


class LineItem(_WireModel):
    id: Identifier
    tab_id: Identifier
    product_name: str
    quantity: Decimal = Field(ge=0)
    unit_price_at_order_time: Decimal = Field(ge=0)
    note: str | None = None
    status: Annotated[LineItemStatus, BeforeValidator(_upper)] = LineItemStatus.ACTIVE
    ordered_at: datetime | None = None
    waiter_name: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price_at_order_time


class GroupedLineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    item: LineItem
    tab_number: str
    customer_name: str | None = None


class TenderMethod(_WireModel):
    id: Identifier
    name: str
    kind: Annotated[TenderKind, BeforeValidator(_upper)] = TenderKind.OTHER
    active: bool = True


class FinalizePayment(BaseModel):
    tender_method_id: Identifier
    tender_method_name: str | None = None
    amount: Decimal
    note: str | None = None


class FinalizeTransactionRequest(BaseModel):
    tab_ids: list[str]
    service_charge: Decimal
    surcharge: Decimal
    discount: Decimal
    payments: list[FinalizePayment]


class FinalizeTransactionResponse(_WireModel):
    transaction_id: Identifier
    message: str | None = None


class ClosedTabSummary(_WireModel):
    number: Identifier
    customer_name: str | None = None
    closed_at: datetime | None = None
    total_paid: Decimal | None = None
    transaction_id: str | None = None


class TransactionEntry(_WireModel):
    """A booked line of a finalized transaction (consumption, fees, discount)."""

    kind: str
    description: str | None = None
    amount: Decimal


class ClosedTabDetail(_WireModel):
    transaction_id: str | None = None
    tabs: list[Tab] = Field(default_factory=list)
    items: list[LineItem] = Field(default_factory=list)
    entries: list[TransactionEntry] = Field(default_factory=list)
    payments: list[FinalizePayment] = Field(default_factory=list)
    closed_at: datetime | None = None


class PrintJob(_WireModel):
    id: Identifier
    point_id: int | None = None
    job_type: str
    status: Annotated[PrintJobStatus, BeforeValidator(_upper)]
    error: str | None = None
    created_at: datetime | None = None


class PrintJobAccepted(_WireModel):
    job_id: Identifier


class ClosedTabQuery(BaseModel):
    start: date
    end: date
