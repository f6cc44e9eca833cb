from .backend import Backend, HttpBackend
from .cashier import CashierDesk, CashierState, OperationResult
from .config import ClientConfig, ConfigError, load_config
from .exceptions import (
    AlreadySelectedError,
    ApiError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    NotSettledError,
    OverpaymentError,
    PartialFetchError,
    SessionNotOpenError,
    UnavailableError,
    ValidationError,
)
from .http_client import HttpClient
from .idempotency import idempotency_headers, new_idempotency_key
from .models import (
    CashMovement,
    CashSession,
    GroupedLineItem,
    LineItem,
    MovementKind,
    SessionStatus,
    Tab,
    TabStatus,
    TenderKind,
    TenderMethod,
)
from .money import EPSILON, round2, to_money
from .tracing import TraceContext
from .ui_errors import UserFacingError, to_user_facing_error

__all__ = [
    "EPSILON",
    "AlreadySelectedError",
    "ApiError",
    "Backend",
    "CashMovement",
    "CashSession",
    "CashierDesk",
    "CashierState",
    "ClientConfig",
    "ConfigError",
    "ConflictError",
    "GroupedLineItem",
    "HttpBackend",
    "HttpClient",
    "InvalidStateError",
    "LineItem",
    "MovementKind",
    "NotFoundError",
    "NotSettledError",
    "OperationResult",
    "OverpaymentError",
    "PartialFetchError",
    "SessionNotOpenError",
    "SessionStatus",
    "Tab",
    "TabStatus",
    "TenderKind",
    "TenderMethod",
    "TraceContext",
    "UnavailableError",
    "UserFacingError",
    "ValidationError",
    "load_config",
    "idempotency_headers",
    "new_idempotency_key",
    "round2",
    "to_money",
    "to_user_facing_error",
]
