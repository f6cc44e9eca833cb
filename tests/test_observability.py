from __future__ import annotations

import json
import logging
from decimal import Decimal

import pytest

from cashdesk.observability import log_action


def test_log_action_emits_json_line(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("cashdesk.tests.observability")
    with caplog.at_level(logging.INFO, logger=logger.name):
        log_action(logger, "checkout", "finalize", "success", trace_id="t-1", total_due=Decimal("311.30"))

    record = json.loads(caplog.records[-1].getMessage())
    assert record["module"] == "checkout"
    assert record["outcome"] == "success"
    assert record["trace_id"] == "t-1"
    assert record["total_due"] == "311.30"
    assert caplog.records[-1].levelno == logging.INFO


def test_log_action_warns_on_error_outcome(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("cashdesk.tests.observability")
    with caplog.at_level(logging.INFO, logger=logger.name):
        log_action(logger, "print_queue", "poll", "error", code="TRANSPORT_ERROR")
    assert caplog.records[-1].levelno == logging.WARNING


def test_log_action_rejects_secrets() -> None:
    with pytest.raises(ValueError, match="token"):
        log_action(logging.getLogger("cashdesk.tests"), "auth", "login", "success", token="abc")
