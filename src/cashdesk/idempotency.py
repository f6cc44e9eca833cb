from __future__ import annotations

import uuid

IDEMPOTENCY_HEADER = "Idempotency-Key"


def new_idempotency_key() -> str:
    return uuid.uuid4().hex


def idempotency_headers(key: str | None = None) -> dict[str, str]:
    """Header for a mutating call; a fresh key is minted when none is given."""
    return {IDEMPOTENCY_HEADER: key or new_idempotency_key()}
