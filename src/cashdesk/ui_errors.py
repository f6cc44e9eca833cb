from __future__ import annotations

from dataclasses import dataclass

from .exceptions import ApiError, UnavailableError


@dataclass(frozen=True)
class UserFacingError:
    """What the cashier screen shows for a failed operation."""

    message: str
    code: str
    details: str | None = None
    trace_id: str | None = None
    retryable: bool = False


def _describe(exc: ApiError) -> str:
    parts = [exc.code]
    if exc.status_code:
        parts.append(f"(HTTP {exc.status_code})")
    text = " ".join(parts)
    return f"{text}: {exc.details}" if exc.details else text


def to_user_facing_error(exc: Exception) -> UserFacingError:
    if isinstance(exc, ApiError):
        return UserFacingError(
            message=exc.message.strip() or "Request failed",
            code=exc.code,
            details=_describe(exc),
            trace_id=exc.trace_id,
            retryable=isinstance(exc, UnavailableError),
        )
    return UserFacingError(message=str(exc) or "Unexpected error", code="UNEXPECTED_ERROR")
