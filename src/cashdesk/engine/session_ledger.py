from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from ..backend import Backend
from ..exceptions import ConflictError, SessionNotOpenError
from ..models import CashMovement, CashSession, MovementKind, SessionStatus
from ..money import MoneyInput
from ..observability import log_action
from ..validation import (
    parse_amount,
    parse_movement_kind,
    validate_close_session,
    validate_movement,
    validate_open_session,
)
from .reconciliation import ReconciliationResult, reconcile

logger = logging.getLogger(__name__)


class SessionLedger:
    """Owns the single open cash-drawer session.

    ``CLOSED --open--> OPEN --close--> CLOSED``. Callers read the session
    through :attr:`current`; nothing else holds a reference that could drift.
    """

    def __init__(self, backend: Backend) -> None:
        self._backend = backend
        self._current: CashSession | None = None
        self.last_closed: CashSession | None = None
        self._transition_lock = asyncio.Lock()

    @property
    def current(self) -> CashSession | None:
        return self._current

    @property
    def is_open(self) -> bool:
        return self._current is not None and self._current.is_open

    def require_open(self) -> CashSession:
        if self._current is None or not self._current.is_open:
            raise SessionNotOpenError(code="SESSION_NOT_OPEN", message="No cash session is open")
        return self._current

    async def get_open_session(self) -> CashSession | None:
        session = await self._backend.get_open_session()
        if session is not None and not session.is_open:
            session = None
        self._current = session
        return session

    async def open(self, opening_float: MoneyInput) -> CashSession:
        amount = parse_amount(opening_float, "opening_float")
        validate_open_session(amount).raise_for_issues()
        async with self._transition_lock:
            if self.is_open:
                raise ConflictError(
                    code="SESSION_ALREADY_OPEN",
                    message="A cash session is already open",
                    details={"session_id": self._current.id if self._current else None},
                    status_code=409,
                )
            session = await self._backend.open_session(amount)
            self._current = session
        log_action(logger, "cash_session", "open", "success", session_id=session.id, opening_float=amount)
        return session

    async def record_movement(self, kind: MovementKind | str, description: str, amount: MoneyInput) -> str:
        movement_kind = parse_movement_kind(kind)
        value = parse_amount(amount, "amount")
        session = self.require_open()
        validate_movement(value, description).raise_for_issues()
        movement_id = await self._backend.record_cash_movement(movement_kind, description.strip(), value)
        log_action(
            logger,
            "cash_session",
            "record_movement",
            "success",
            session_id=session.id,
            movement_id=movement_id,
            kind=movement_kind.value,
            amount=value,
        )
        return movement_id

    async def list_movements(self, session_id: str | None = None) -> list[CashMovement]:
        target = session_id or self.require_open().id
        return await self._backend.list_session_movements(target)

    async def close(self, session_id: str, counted_amount: MoneyInput, note: str | None = None) -> ReconciliationResult:
        counted = parse_amount(counted_amount, "counted_amount")
        validate_close_session(counted).raise_for_issues()
        async with self._transition_lock:
            current = self._current
            if current is None or current.id != session_id or not current.is_open:
                raise ConflictError(
                    code="SESSION_ALREADY_CLOSED",
                    message=f"Cash session {session_id} is not open",
                    details={"session_id": session_id},
                    status_code=409,
                )
            response = await self._backend.close_session(session_id, counted, (note or "").strip() or None)
            result = reconcile(response.expected_amount, counted)
            closed = response.session
            if closed.status is not SessionStatus.CLOSED or closed.discrepancy is None:
                closed = closed.model_copy(
                    update={
                        "status": SessionStatus.CLOSED,
                        "counted_amount": result.counted_amount,
                        "expected_amount": result.expected_amount,
                        "discrepancy": result.discrepancy,
                        "closed_at": closed.closed_at or datetime.now(timezone.utc),
                        "note": note or closed.note,
                    }
                )
            self._current = None
            self.last_closed = closed
        log_action(
            logger,
            "cash_session",
            "close",
            "success",
            session_id=session_id,
            expected=result.expected_amount,
            counted=result.counted_amount,
            discrepancy=result.discrepancy,
        )
        return result
