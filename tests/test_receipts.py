from __future__ import annotations

from decimal import Decimal

from cashdesk.engine.checkout_calculator import compute_totals
from cashdesk.engine.payment_ledger import FinalizeOutcome, PaymentEntry
from cashdesk.models import ClosedTabDetail, FinalizePayment, GroupedLineItem, TransactionEntry
from cashdesk.receipts import build_bill_check, build_payment_receipt, build_receipt_from_detail
from fakes import make_item, make_tab


def test_bill_check_sends_raw_numbers_grouped_by_tab() -> None:
    tab_a = make_tab("12", "50.00", customer_name="Ana")
    tab_b = make_tab("15", "30.00")
    items = [
        GroupedLineItem(item=make_item(tab_a, "i-1", "Beer", "2.000", "12.50"), tab_number="12", customer_name="Ana"),
        GroupedLineItem(item=make_item(tab_b, "i-2", "Water", "1", "30.00"), tab_number="15"),
    ]
    totals = compute_totals(
        consumption_total="80.00",
        service_charge_enabled=True,
        surcharge=0,
        discount="3.00",
        split_count=2,
        total_paid="20.00",
    )

    payload = build_bill_check([tab_a, tab_b], items, totals, header=["The Bar"])

    assert payload["header"] == ["The Bar"]
    assert payload["tabs"][0] == {
        "number": "12",
        "customer_name": "Ana",
        "items": [{"quantity": "2x", "name": "Beer", "amount": 25.0}],
    }
    assert payload["summary"]["service_charge"] == {"description": "(+) Service charge (10%)", "amount": 8.0}
    assert payload["summary"]["total_due"]["amount"] == 85.0
    assert payload["balance_due"] == 65.0
    assert payload["per_person"] == 42.5


def test_payment_receipt_lists_payments() -> None:
    tab = make_tab("7", "40.00")
    totals = compute_totals(
        consumption_total="40.00",
        service_charge_enabled=False,
        surcharge=0,
        discount=0,
        split_count=1,
        total_paid="40.00",
    )
    outcome = FinalizeOutcome(
        group_id="g-1",
        transaction_id="txn-9",
        tabs=[tab],
        totals=totals,
        payments=[
            PaymentEntry(tender_method_id="cash", tender_method_name="Cash", amount=Decimal("25.00")),
            PaymentEntry(tender_method_id="pix", tender_method_name="Pix", amount=Decimal("15.00")),
        ],
    )

    payload = build_payment_receipt(outcome)

    assert payload["transaction_id"] == "txn-9"
    assert [(line["method"], line["amount"]) for line in payload["payments"]] == [("Cash", 25.0), ("Pix", 15.0)]
    assert payload["total_paid"] == 40.0
    assert payload["summary"]["service_charge_included"] is False


def test_receipt_from_detail_uses_booked_entries() -> None:
    tab = make_tab("7", "40.00", status="PAID")
    detail = ClosedTabDetail(
        transaction_id="txn-9",
        tabs=[tab],
        items=[
            make_item(tab, "i-1", "Burger", "1", "40.00"),
            make_item(tab, "i-2", "Soda", "1", "6.00", status="CANCELLED"),
        ],
        entries=[
            TransactionEntry(kind="consumption", description="Tab 7", amount=Decimal("40.00")),
            TransactionEntry(kind="SERVICE_CHARGE", amount=Decimal("4.00")),
            TransactionEntry(kind="discount", amount=Decimal("2.00")),
        ],
        payments=[FinalizePayment(tender_method_id="cash", tender_method_name="Cash", amount=Decimal("42.00"))],
    )

    payload = build_receipt_from_detail(detail)

    assert payload["summary"]["total_due"]["amount"] == 42.0
    assert payload["summary"]["service_charge_included"] is True
    assert [item["name"] for item in payload["tabs"][0]["items"]] == ["Burger"]
    assert payload["total_paid"] == 42.0
