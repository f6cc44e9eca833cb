from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
EPSILON = Decimal("0.01")

MoneyInput = Decimal | int | float | str


def to_money(value: MoneyInput | None) -> Decimal:
    """Coerce user or wire input into a two-place Decimal.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.10")`` rather
    than its binary expansion. Comma decimal separators are accepted.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        raw = value
    else:
        text = str(value).strip().replace(",", ".")
        try:
            raw = Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"Invalid money value: {value!r}") from exc
    if not raw.is_finite():
        raise ValueError(f"Invalid money value: {value!r}")
    return round2(raw)


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def within_epsilon(value: Decimal) -> bool:
    return abs(value) <= EPSILON
