from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..error_mapper import rewrap
from ..exceptions import ApiError, ConflictError, NotFoundError, ResponseFormatError, SessionNotOpenError
from ..idempotency import idempotency_headers
from ..models import (
    CashMovement,
    CashSession,
    CashSessionEnvelope,
    MovementCreated,
    MovementKind,
    SessionCloseResponse,
)
from .base import BaseClient, parse_list, parse_model


@dataclass
class SessionsClient(BaseClient):
    module: str = "cash_session"

    async def get_open_session(self) -> CashSession | None:
        try:
            data = await self._request("GET", "/sessions/open", operation="get_open_session")
        except NotFoundError:
            return None
        except ApiError as exc:
            raise _map_session_error(exc) from exc
        return parse_model(CashSessionEnvelope, data, "open session").session

    async def open_session(self, opening_float: Decimal, idempotency_key: str | None = None) -> CashSession:
        try:
            data = await self._request(
                "POST",
                "/sessions/open",
                json_body={"opening_float": str(opening_float)},
                headers=idempotency_headers(idempotency_key),
                operation="open_session",
            )
        except ApiError as exc:
            raise _map_session_error(exc) from exc
        envelope = parse_model(CashSessionEnvelope, data, "open session")
        if envelope.session is None:
            raise ResponseFormatError(code="EMPTY_RESPONSE", message="Backend did not return the opened session")
        return envelope.session

    async def close_session(
        self,
        session_id: str,
        counted_amount: Decimal,
        note: str | None = None,
        idempotency_key: str | None = None,
    ) -> SessionCloseResponse:
        body = {"counted_amount": str(counted_amount), "note": note}
        try:
            data = await self._request(
                "POST",
                f"/sessions/{session_id}/close",
                json_body={key: value for key, value in body.items() if value is not None},
                headers=idempotency_headers(idempotency_key),
                operation="close_session",
            )
        except ApiError as exc:
            raise _map_session_error(exc) from exc
        return parse_model(SessionCloseResponse, data, "close session")

    async def record_cash_movement(
        self,
        kind: MovementKind,
        description: str,
        amount: Decimal,
        idempotency_key: str | None = None,
    ) -> str:
        try:
            data = await self._request(
                "POST",
                "/movements",
                json_body={"kind": kind.value, "description": description, "amount": str(amount)},
                headers=idempotency_headers(idempotency_key),
                operation="record_cash_movement",
            )
        except ApiError as exc:
            raise _map_session_error(exc) from exc
        return parse_model(MovementCreated, data, "cash movement").movement_id

    async def list_session_movements(self, session_id: str) -> list[CashMovement]:
        try:
            data = await self._request(
                "GET",
                f"/movements/session/{session_id}",
                operation="list_session_movements",
            )
        except ApiError as exc:
            raise _map_session_error(exc) from exc
        return parse_list(CashMovement, data, "cash movements")


def _map_session_error(exc: ApiError) -> ApiError:
    detail_message = ""
    if isinstance(exc.details, dict):
        detail_message = str(exc.details.get("message") or "")
    elif exc.details is not None:
        detail_message = str(exc.details)
    combined = f"{exc.message} {detail_message}".lower()
    if "session is not open" in combined or "no open cash session" in combined:
        return rewrap(exc, SessionNotOpenError)
    if "already open" in combined or "already closed" in combined:
        return rewrap(exc, ConflictError)
    return exc
