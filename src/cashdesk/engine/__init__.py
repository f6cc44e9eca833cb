from .checkout_calculator import (
    SERVICE_CHARGE_RATE,
    CheckoutTotals,
    compute_balance_due,
    compute_per_person,
    compute_service_charge,
    compute_total_due,
    compute_totals,
)
from .payment_ledger import CheckoutGroup, FinalizeOutcome, PaymentEntry, PaymentLedger
from .print_monitor import PrintQueueMonitor
from .reconciliation import ReconciliationResult, reconcile
from .scheduler import FinalizeScheduler
from .session_ledger import SessionLedger
from .tab_aggregator import Aggregation, TabAggregator, aggregate

__all__ = [
    "SERVICE_CHARGE_RATE",
    "Aggregation",
    "CheckoutGroup",
    "CheckoutTotals",
    "FinalizeOutcome",
    "FinalizeScheduler",
    "PaymentEntry",
    "PaymentLedger",
    "PrintQueueMonitor",
    "ReconciliationResult",
    "SessionLedger",
    "TabAggregator",
    "aggregate",
    "compute_balance_due",
    "compute_per_person",
    "compute_service_charge",
    "compute_total_due",
    "compute_totals",
    "reconcile",
]
