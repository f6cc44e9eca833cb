from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..money import MoneyInput, round2, to_money, within_epsilon


@dataclass(frozen=True)
class ReconciliationResult:
    expected_amount: Decimal
    counted_amount: Decimal
    discrepancy: Decimal
    is_balanced: bool

    @property
    def is_short(self) -> bool:
        return not self.is_balanced and self.discrepancy < 0

    @property
    def is_over(self) -> bool:
        return not self.is_balanced and self.discrepancy > 0


def reconcile(expected_amount: MoneyInput, counted_amount: MoneyInput) -> ReconciliationResult:
    """Compare the backend's expected closing cash with the counted drawer.

    ``expected_amount`` is the backend's figure (opening float plus net
    movements and cash payments); it is presented, not recomputed. A negative
    discrepancy means the drawer is short.
    """
    expected = to_money(expected_amount)
    counted = to_money(counted_amount)
    discrepancy = round2(counted - expected)
    return ReconciliationResult(
        expected_amount=expected,
        counted_amount=counted,
        discrepancy=discrepancy,
        is_balanced=within_epsilon(discrepancy),
    )
