from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .exceptions import ValidationError
from .models import MovementKind
from .money import MoneyInput, to_money


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    reason: str


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    issues: list[ValidationIssue]

    def raise_for_issues(self) -> None:
        if self.ok:
            return
        raise ValidationError(
            code="VALIDATION_ERROR",
            message="; ".join(f"{issue.field}: {issue.reason}" for issue in self.issues),
            details=[{"field": issue.field, "reason": issue.reason} for issue in self.issues],
        )


def parse_amount(value: MoneyInput | None, field: str) -> Decimal:
    """Money from operator input; unparseable text is a ``ValidationError``."""
    try:
        return to_money(value)
    except ValueError as exc:
        raise ValidationError(
            code="INVALID_AMOUNT",
            message=f"{field}: {value!r} is not a valid amount",
            details={"field": field, "value": str(value)},
        ) from exc


def parse_movement_kind(kind: MovementKind | str) -> MovementKind:
    if isinstance(kind, MovementKind):
        return kind
    try:
        return MovementKind(str(kind).strip().upper())
    except ValueError as exc:
        raise ValidationError(
            code="INVALID_KIND",
            message=f"Unknown movement kind {kind!r}",
            details={"kind": str(kind), "allowed": [member.value for member in MovementKind]},
        ) from exc


def _require_positive_amount(value: Decimal | None, field: str, issues: list[ValidationIssue]) -> None:
    if value is None:
        issues.append(ValidationIssue(field=field, reason="is required"))
        return
    if value <= 0:
        issues.append(ValidationIssue(field=field, reason="must be greater than 0"))


def _require_non_negative_amount(value: Decimal | None, field: str, issues: list[ValidationIssue]) -> None:
    if value is None:
        issues.append(ValidationIssue(field=field, reason="is required"))
    elif value < 0:
        issues.append(ValidationIssue(field=field, reason="must be >= 0"))


def _require_non_empty(value: str | None, field: str, issues: list[ValidationIssue]) -> None:
    if value is None or not value.strip():
        issues.append(ValidationIssue(field=field, reason="is required"))


def validate_open_session(opening_float: Decimal | None) -> ValidationResult:
    issues: list[ValidationIssue] = []
    _require_non_negative_amount(opening_float, "opening_float", issues)
    return ValidationResult(ok=not issues, issues=issues)


def validate_movement(amount: Decimal | None, description: str | None) -> ValidationResult:
    issues: list[ValidationIssue] = []
    _require_positive_amount(amount, "amount", issues)
    _require_non_empty(description, "description", issues)
    return ValidationResult(ok=not issues, issues=issues)


def validate_close_session(counted_amount: Decimal | None) -> ValidationResult:
    issues: list[ValidationIssue] = []
    _require_non_negative_amount(counted_amount, "counted_amount", issues)
    return ValidationResult(ok=not issues, issues=issues)


def validate_payment(tender_method_id: str | None, amount: Decimal | None) -> ValidationResult:
    issues: list[ValidationIssue] = []
    _require_non_empty(tender_method_id, "tender_method_id", issues)
    _require_positive_amount(amount, "amount", issues)
    return ValidationResult(ok=not issues, issues=issues)


def validate_adjustments(
    *,
    surcharge: Decimal,
    discount: Decimal,
    split_count: int,
) -> ValidationResult:
    issues: list[ValidationIssue] = []
    _require_non_negative_amount(surcharge, "surcharge", issues)
    _require_non_negative_amount(discount, "discount", issues)
    if split_count < 1:
        issues.append(ValidationIssue(field="split_count", reason="must be >= 1"))
    return ValidationResult(ok=not issues, issues=issues)
