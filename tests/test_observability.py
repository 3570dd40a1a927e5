"""Tests for logging, redaction and correlation ids."""

import json
import logging
from datetime import date
from enum import Enum

from roomsync.observability.correlation import (
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from roomsync.observability.logging import JsonFormatter, get_logger
from roomsync.observability.redaction import redact_string, redact_value, safe_log_context


class Colour(Enum):
    RED = "red"


class TestRedaction:
    def test_redact_phone_number(self):
        result = redact_string("Call me at +55 11 99999-8888")
        assert "99999" not in result
        assert "[REDACTED]" in result

    def test_redact_email(self):
        result = redact_string("Guest email: ana@example.com")
        assert "ana@example.com" not in result

    def test_confirmation_number_kept(self):
        assert redact_string("RS20240301-ABC123") == "RS20240301-ABC123"

    def test_structures_reduced_to_shape(self):
        assert redact_value({"special_requests": "Allergic to nuts"}) == "dict(keys=['special_requests'])"
        assert redact_value(["a", "b", "c"]) == "list(len=3)"

    def test_scalars(self):
        assert redact_value(None) == "null"
        assert redact_value(True) == "true"
        assert redact_value(Colour.RED) == "red"
        assert redact_value(date(2024, 3, 10)) == "2024-03-10"
        assert redact_value(object()) == "<object>"

    def test_safe_log_context(self):
        ctx = safe_log_context(phone="+5511999998888", count=42)
        assert "[REDACTED]" in ctx["phone"]
        assert ctx["count"] == "42"


class TestJsonLogging:
    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("roomsync.test", logging.INFO, __file__, 1, "room status changed", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_one_json_object(self):
        line = JsonFormatter().format(self._record(extra_fields={"room_id": "room-101"}))
        data = json.loads(line)
        assert data["message"] == "room status changed"
        assert data["level"] == "INFO"
        assert data["room_id"] == "room-101"
        assert "correlationId" not in data

    def test_includes_correlation_id(self):
        token = set_correlation_id("corr-9")
        try:
            data = json.loads(JsonFormatter().format(self._record()))
        finally:
            reset_correlation_id(token)
        assert data["correlationId"] == "corr-9"
        assert get_correlation_id() == ""

    def test_get_logger_adds_single_handler(self):
        first = get_logger("roomsync.test.handlers")
        second = get_logger("roomsync.test.handlers")
        assert first is second
        assert len(first.handlers) == 1
        assert isinstance(first.handlers[0].formatter, JsonFormatter)
