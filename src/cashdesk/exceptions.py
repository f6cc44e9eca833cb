from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None = None
    trace_id: str | None = None
    status_code: int = 0
    raw_payload: object | None = None

    def __str__(self) -> str:
        trace = f" trace_id={self.trace_id}" if self.trace_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{trace}"


class ValidationError(ApiError):
    """Bad input; the operator can correct it and retry."""


class ConflictError(ApiError):
    """409 or state already changed elsewhere (session already open/closed)."""


class AlreadySelectedError(ConflictError):
    """The tab is already part of the active checkout group."""


class NotFoundError(ApiError):
    pass


class InvalidStateError(ApiError):
    """Entity exists but its status forbids the operation."""


class OverpaymentError(ApiError):
    """A single payment would exceed the balance due."""


class NotSettledError(ApiError):
    """Finalize attempted while a balance is still due."""


class PartialFetchError(ApiError):
    """Some tabs in the group failed to load; the rest are usable."""

    @property
    def failed_tabs(self) -> list[str]:
        if isinstance(self.details, dict):
            return list(self.details.get("failed_tabs") or [])
        return []


class AuthError(ApiError):
    """Authentication failed or the bearer token is invalid."""


class PermissionDeniedError(ApiError):
    """Authorization denied for the operator's role."""


class RateLimitError(ApiError):
    """429 throttling error."""


class UnavailableError(ApiError):
    """The backend could not be reached or failed to answer."""


class ServerError(UnavailableError):
    """5xx server-side failures."""


class TransportError(UnavailableError):
    """Network/transport failure before an HTTP response was returned."""


class ResponseFormatError(UnavailableError):
    """The backend answered with a payload that does not match the contract."""


class SessionNotOpenError(ValidationError):
    """A cash movement or checkout was attempted without an open session."""
