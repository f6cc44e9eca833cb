from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Any, Iterable, Sequence

from .engine.checkout_calculator import SERVICE_CHARGE_RATE, CheckoutTotals
from .engine.payment_ledger import FinalizeOutcome, PaymentEntry
from .models import ClosedTabDetail, GroupedLineItem, LineItem, LineItemStatus, Tab
from .money import ZERO, round2

BILL_CHECK_JOB = "bill_check"
PAYMENT_RECEIPT_JOB = "payment_receipt"

# Money goes out as raw numbers; the print bridge owns currency formatting.


def _number(value: Decimal | None) -> float:
    return float(round2(value if value is not None else ZERO))


def _quantity(value: Decimal) -> str:
    normalized = value.normalize()
    text = format(normalized, "f")
    return f"{text}x"


def _item_line(item: LineItem) -> dict[str, Any]:
    return {
        "quantity": _quantity(item.quantity),
        "name": item.product_name,
        "amount": _number(item.line_total),
    }


def _tab_blocks(tabs: Sequence[Tab], items_by_tab: dict[str, list[LineItem]]) -> list[dict[str, Any]]:
    return [
        {
            "number": tab.number,
            "customer_name": tab.customer_name,
            "items": [_item_line(item) for item in items_by_tab.get(tab.id, [])],
        }
        for tab in tabs
    ]


def _group_items(items: Iterable[GroupedLineItem]) -> dict[str, list[LineItem]]:
    grouped: dict[str, list[LineItem]] = defaultdict(list)
    for entry in items:
        grouped[entry.item.tab_id].append(entry.item)
    return grouped


def _summary(totals: CheckoutTotals, service_charge_enabled: bool) -> dict[str, Any]:
    rate = int(SERVICE_CHARGE_RATE * 100)
    return {
        "consumption": _number(totals.consumption),
        "service_charge": {"description": f"(+) Service charge ({rate}%)", "amount": _number(totals.service_charge)},
        "service_charge_included": service_charge_enabled,
        "surcharge": {"description": "(+) Surcharge", "amount": _number(totals.surcharge)},
        "discount": {"description": "(-) Discount", "amount": _number(totals.discount)},
        "total_due": {"description": "Total", "amount": _number(totals.total_due)},
    }


def _payment_lines(payments: Sequence[PaymentEntry]) -> list[dict[str, Any]]:
    return [
        {
            "method": entry.tender_method_name,
            "timestamp": entry.timestamp.isoformat(),
            "amount": _number(entry.amount),
        }
        for entry in payments
    ]


def build_bill_check(
    tabs: Sequence[Tab],
    items: Iterable[GroupedLineItem],
    totals: CheckoutTotals,
    *,
    service_charge_enabled: bool = True,
    header: Sequence[str] = (),
) -> dict[str, Any]:
    """Pre-bill shown to the customer before paying."""
    return {
        "header": list(header),
        "tab_ids": [tab.id for tab in tabs],
        "tabs": _tab_blocks(tabs, _group_items(items)),
        "summary": _summary(totals, service_charge_enabled),
        "total_paid": _number(totals.total_paid),
        "balance_due": _number(totals.balance_due),
        "split_count": totals.split_count,
        "per_person": _number(totals.per_person),
    }


def build_payment_receipt(
    outcome: FinalizeOutcome,
    items: Iterable[GroupedLineItem] = (),
    *,
    header: Sequence[str] = (),
) -> dict[str, Any]:
    return {
        "header": list(header),
        "transaction_id": outcome.transaction_id,
        "tabs": _tab_blocks(outcome.tabs, _group_items(items)),
        "summary": _summary(outcome.totals, outcome.totals.service_charge > 0),
        "payments": _payment_lines(outcome.payments),
        "total_paid": _number(sum((entry.amount for entry in outcome.payments), ZERO)),
    }


def build_receipt_from_detail(detail: ClosedTabDetail, *, header: Sequence[str] = ()) -> dict[str, Any]:
    """Receipt for an already finalized transaction, from its booked entries."""
    booked: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for entry in detail.entries:
        booked[entry.kind.strip().lower()] += entry.amount
    consumption = booked["consumption"]
    service_charge = booked["service_charge"]
    surcharge = booked["surcharge"]
    discount = booked["discount"]
    totals = CheckoutTotals(
        consumption=round2(consumption),
        service_charge=round2(service_charge),
        surcharge=round2(surcharge),
        discount=round2(discount),
        total_due=round2(consumption + service_charge + surcharge - discount),
        per_person=round2(consumption + service_charge + surcharge - discount),
        split_count=1,
    )
    items_by_tab: dict[str, list[LineItem]] = defaultdict(list)
    for item in detail.items:
        if item.status is LineItemStatus.ACTIVE:
            items_by_tab[item.tab_id].append(item)
    return {
        "header": list(header),
        "transaction_id": detail.transaction_id,
        "tabs": _tab_blocks(detail.tabs, items_by_tab),
        "summary": _summary(totals, service_charge > 0),
        "payments": [
            {"method": payment.tender_method_name or payment.tender_method_id, "amount": _number(payment.amount)}
            for payment in detail.payments
        ],
        "total_paid": _number(sum((payment.amount for payment in detail.payments), ZERO)),
    }
