"""Unit tests for structured logging helpers."""

import logging

import pytest

from gateway.utils.logging import (
    CorrelationIdFilter,
    StructuredFormatter,
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    log_mandate_operation,
    log_webhook_event,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def clean_correlation_id():
    clear_correlation_id()
    yield
    clear_correlation_id()


class TestCorrelationId:
    def test_set_and_get(self):
        assert set_correlation_id("abc") == "abc"
        assert get_correlation_id() == "abc"

    def test_generated_when_missing(self):
        cid = set_correlation_id()
        assert cid and get_correlation_id() == cid

    def test_formatter_prefixes_id(self):
        set_correlation_id("req-1")
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "hello", None, None)

        assert StructuredFormatter("%(message)s").format(record) == "[req-1] hello"

    def test_get_logger_adds_filter_once(self):
        logger = get_logger("gateway.test.filter")
        get_logger("gateway.test.filter")

        assert sum(isinstance(f, CorrelationIdFilter) for f in logger.filters) == 1


class TestStructuredHelpers:
    def test_mandate_operation_levels(self, caplog):
        logger = get_logger("gateway.test.mandate")
        with caplog.at_level(logging.INFO, logger="gateway.test.mandate"):
            log_mandate_operation(logger, "create", mandate_id="mandate_E1", status="INITIALIZED")
            log_mandate_operation(logger, "create", mandate_id="mandate_E1", error="boom")

        info, error = caplog.records
        assert info.levelno == logging.INFO
        assert "mandate_id=mandate_E1" in info.getMessage()
        assert error.levelno == logging.ERROR
        assert error.context["error"] == "boom"

    @pytest.mark.parametrize(
        "result,level",
        [("applied", logging.INFO), ("duplicate", logging.WARNING), ("skipped", logging.WARNING), ("error", logging.ERROR)],
    )
    def test_webhook_event_levels(self, caplog, result, level):
        logger = get_logger("gateway.test.webhook")
        with caplog.at_level(logging.INFO, logger="gateway.test.webhook"):
            log_webhook_event(logger, "SUBSCRIPTION_PAYMENT_SUCCESS", "k|t|p", result=result)

        assert caplog.records[-1].levelno == level
        assert "k|t|p" in caplog.records[-1].getMessage()
