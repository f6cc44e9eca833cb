from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

_FORBIDDEN_CONTEXT_KEYS = {"token", "authorization", "password"}


def log_action(
    logger: logging.Logger,
    module: str,
    action: str,
    outcome: str,
    trace_id: str | None = None,
    **context: Any,
) -> None:
    illegal = sorted(key for key in context if key.lower() in _FORBIDDEN_CONTEXT_KEYS)
    if illegal:
        raise ValueError(f"Secret-like keys are forbidden in action logs: {illegal}")
    record = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": "INFO" if outcome == "success" else "WARNING",
        "module": module,
        "action": action,
        "outcome": outcome,
        "trace_id": trace_id,
    }
    record.update(context)
    level = logging.INFO if outcome == "success" else logging.WARNING
    logger.log(level, json.dumps(record, default=str, sort_keys=True))
