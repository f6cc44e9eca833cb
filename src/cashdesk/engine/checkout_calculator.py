from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..money import ZERO, MoneyInput, round2, to_money

SERVICE_CHARGE_RATE = Decimal("0.10")


@dataclass(frozen=True)
class CheckoutTotals:
    consumption: Decimal
    service_charge: Decimal
    surcharge: Decimal
    discount: Decimal
    total_due: Decimal
    per_person: Decimal
    split_count: int
    total_paid: Decimal = ZERO
    balance_due: Decimal = ZERO


def compute_service_charge(consumption_total: MoneyInput, enabled: bool) -> Decimal:
    if not enabled:
        return ZERO
    return round2(to_money(consumption_total) * SERVICE_CHARGE_RATE)


def compute_total_due(
    consumption_total: MoneyInput,
    service_charge: MoneyInput,
    surcharge: MoneyInput,
    discount: MoneyInput,
) -> Decimal:
    # Not clamped: a negative total is surfaced by the caller.
    return round2(to_money(consumption_total) + to_money(service_charge) + to_money(surcharge) - to_money(discount))


def compute_per_person(total_due: MoneyInput, split_count: int) -> Decimal:
    return round2(to_money(total_due) / Decimal(max(1, split_count)))


def compute_balance_due(total_due: MoneyInput, total_paid: MoneyInput) -> Decimal:
    return max(ZERO, round2(to_money(total_due) - to_money(total_paid)))


def compute_totals(
    *,
    consumption_total: MoneyInput,
    service_charge_enabled: bool,
    surcharge: MoneyInput,
    discount: MoneyInput,
    split_count: int,
    total_paid: MoneyInput = ZERO,
) -> CheckoutTotals:
    consumption = to_money(consumption_total)
    service_charge = compute_service_charge(consumption, service_charge_enabled)
    total_due = compute_total_due(consumption, service_charge, surcharge, discount)
    paid = to_money(total_paid)
    return CheckoutTotals(
        consumption=consumption,
        service_charge=service_charge,
        surcharge=to_money(surcharge),
        discount=to_money(discount),
        total_due=total_due,
        per_person=compute_per_person(total_due, split_count),
        split_count=max(1, split_count),
        total_paid=paid,
        balance_due=compute_balance_due(total_due, paid),
    )
