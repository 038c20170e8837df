"""Tests for logging utilities and sensitive data redaction."""

from __future__ import annotations

import json
import logging

import pytest

from aisle.logging_utils import JsonFormatter, configure_logging, context_logger, redact


@pytest.mark.parametrize("fmt", ["plain", "json"])
def test_sensitive_data_filter_redacts_tokens(fmt):
    secret = "top-secret-token"
    configure_logging("INFO", fmt, [secret])

    handler = logging.getLogger().handlers[0]
    record = logging.LogRecord(
        name="aisle.test.redaction",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg="Authorization header Bearer %s",
        args=(secret,),
        exc_info=None,
    )

    for filter_ in handler.filters:
        filter_.filter(record)

    formatted = handler.format(record)
    assert secret not in formatted
    assert "[redacted]" in formatted


def test_json_formatter_includes_structured_fields():
    record = logging.LogRecord(
        name="aisle.grocery.facade",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg="Rebalanced %s items",
        args=(3,),
        exc_info=None,
    )
    record.store_id = 2
    record.operation = "rebalance"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "Rebalanced 3 items"
    assert payload["store_id"] == 2
    assert payload["operation"] == "rebalance"
    assert "item_id" not in payload


def test_context_logger_merges_fields(caplog):
    log = context_logger("aisle.test.context", operation="delete_store", store_id=7)

    with caplog.at_level(logging.INFO, logger="aisle.test.context"):
        log.info("Deleted store", extra={"item_id": 3})

    record = caplog.records[-1]
    assert (record.operation, record.store_id, record.item_id) == ("delete_store", 7, 3)


def test_library_loggers_stay_quiet_unless_debug():
    configure_logging("INFO", "plain", [])
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    configure_logging("DEBUG", "plain", [])
    assert logging.getLogger("sqlalchemy.engine").level == logging.DEBUG


def test_redact_masks_query_tokens():
    assert redact("GET /stores?api_token=abc123&x=1") == "GET /stores?api_token=[redacted]&x=1"
