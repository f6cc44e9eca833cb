from __future__ import annotations

from typing import Mapping

from .exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ServerError,
    ValidationError,
)

_BY_STATUS: dict[int, type[ApiError]] = {
    400: ValidationError,
    401: AuthError,
    403: PermissionDeniedError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    429: RateLimitError,
}


def error_class_for(status_code: int) -> type[ApiError]:
    if status_code >= 500:
        return ServerError
    return _BY_STATUS.get(status_code, ApiError)


def map_error(status_code: int, payload: Mapping[str, object] | None, trace_id: str | None) -> ApiError:
    """Build the typed error for a non-2xx backend answer.

    A ``trace_id`` in the body beats the one carried on the headers.
    """
    body = dict(payload or {})
    body_trace = body.get("trace_id")
    return error_class_for(status_code)(
        code=str(body.get("code") or "HTTP_ERROR"),
        message=str(body.get("message") or "Request failed"),
        details=body.get("details"),
        trace_id=trace_id if body_trace is None else str(body_trace),
        status_code=status_code,
        raw_payload=body,
    )


def rewrap(exc: ApiError, error_type: type[ApiError]) -> ApiError:
    """Copy an error into a more specific type, keeping its wire metadata."""
    return error_type(
        code=exc.code,
        message=exc.message,
        details=exc.details,
        trace_id=exc.trace_id,
        status_code=exc.status_code,
        raw_payload=exc.raw_payload,
    )
