from __future__ import annotations

from decimal import Decimal

import pytest

from cashdesk.engine.checkout_calculator import (
    compute_balance_due,
    compute_per_person,
    compute_service_charge,
    compute_total_due,
    compute_totals,
)
from cashdesk.money import to_money


def test_service_charge_is_ten_percent_when_enabled() -> None:
    assert compute_service_charge(Decimal("283.00"), True) == Decimal("28.30")
    assert compute_service_charge(Decimal("283.00"), False) == Decimal("0.00")


def test_service_charge_rounds_half_up() -> None:
    assert compute_service_charge(Decimal("10.05"), True) == Decimal("1.01")


def test_totals_for_two_tabs_with_service_charge() -> None:
    totals = compute_totals(
        consumption_total=Decimal("120.00") + Decimal("163.00"),
        service_charge_enabled=True,
        surcharge=0,
        discount=0,
        split_count=1,
    )
    assert totals.consumption == Decimal("283.00")
    assert totals.service_charge == Decimal("28.30")
    assert totals.total_due == Decimal("311.30")
    assert totals.balance_due == Decimal("311.30")


def test_total_due_applies_surcharge_and_discount() -> None:
    assert compute_total_due("100", "10", "5", "15.50") == Decimal("99.50")


def test_total_due_is_not_clamped() -> None:
    assert compute_total_due("10", "0", "0", "25") == Decimal("-15.00")


def test_per_person_split() -> None:
    assert compute_per_person(Decimal("50.00"), 4) == Decimal("12.50")


@pytest.mark.parametrize("split_count", [0, -3])
def test_per_person_clamps_split_count(split_count: int) -> None:
    assert compute_per_person(Decimal("50.00"), split_count) == Decimal("50.00")


def test_balance_due_never_negative() -> None:
    assert compute_balance_due("100.00", "100.01") == Decimal("0.00")
    assert compute_balance_due("100.00", "40.00") == Decimal("60.00")


def test_totals_track_payments() -> None:
    totals = compute_totals(
        consumption_total="50",
        service_charge_enabled=False,
        surcharge=0,
        discount=0,
        split_count=4,
        total_paid="20",
    )
    assert totals.per_person == Decimal("12.50")
    assert totals.total_paid == Decimal("20.00")
    assert totals.balance_due == Decimal("30.00")


def test_to_money_accepts_float_and_comma() -> None:
    assert to_money(0.1) == Decimal("0.10")
    assert to_money("12,345") == Decimal("12.35")
    assert to_money(None) == Decimal("0.00")


@pytest.mark.parametrize("raw", ["abc", "NaN", "Infinity"])
def test_to_money_rejects_garbage(raw: str) -> None:
    with pytest.raises(ValueError):
        to_money(raw)
