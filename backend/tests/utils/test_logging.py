# backend/tests/utils/test_logging.py
"""
Tests for logging configuration helpers.
"""

import json
import logging
import sys

import pytest

from fintrack.utils.context import clear_correlation_id, set_correlation_id
from fintrack.utils.logging import (
    NO_CORRELATION_ID,
    CorrelationIdFilter,
    JsonFormatter,
    _get_log_level,
)


def make_record(message: str = "Recorded Expense", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="fintrack.services.ledger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestGetLogLevel:

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("debug", logging.DEBUG),
            (" INFO ", logging.INFO),
            ("warn", logging.WARNING),
            ("CRITICAL", logging.CRITICAL),
        ],
    )
    def test_valid_levels(self, name, expected):
        assert _get_log_level(name) == expected

    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            _get_log_level("verbose")


class TestCorrelationIdFilter:

    def test_injects_current_id(self):
        record = make_record()
        set_correlation_id("abc-123")
        try:
            assert CorrelationIdFilter().filter(record) is True
        finally:
            clear_correlation_id()

        assert record.correlation_id == "abc-123"

    def test_placeholder_without_id(self):
        clear_correlation_id()
        record = make_record()

        CorrelationIdFilter().filter(record)

        assert record.correlation_id == NO_CORRELATION_ID


class TestJsonFormatter:

    def test_basic_fields(self):
        record = make_record("Recorded Expense of 1000 on account 3", correlation_id="req-1")

        entry = json.loads(JsonFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "fintrack.services.ledger"
        assert entry["correlation_id"] == "req-1"
        assert entry["message"] == "Recorded Expense of 1000 on account 3"
        assert "extra" not in entry

    def test_extras_are_included(self):
        record = make_record(correlation_id="req-1", account_id=3, amount=object())

        entry = json.loads(JsonFormatter().format(record))

        assert entry["extra"]["account_id"] == 3
        assert isinstance(entry["extra"]["amount"], str)

    def test_exception_is_formatted(self):
        try:
            raise RuntimeError("store down")
        except RuntimeError:
            record = make_record(correlation_id="req-1")
            record.exc_info = sys.exc_info()

        entry = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: store down" in entry["exception"]
