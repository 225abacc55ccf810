"""
Unit tests for structured logging configuration.

Tests verify:
- JSON log lines carry the service name and correlation fields
- Context variables are set, read and cleared
- Trace ID generation works
"""
import json
import logging
import uuid
from io import StringIO

import pytest

from brain.core.logging import (
    add_request_context,
    configure_logging,
    generate_trace_id,
    get_logger,
    get_trace_id,
    set_context_id,
    set_request_id,
    set_trace_id,
    set_user_id,
)


@pytest.fixture(autouse=True)
def reset_context():
    yield
    set_trace_id(None)
    set_request_id(None)
    set_user_id(None)
    set_context_id(None)


class TestLoggingConfiguration:
    """Test logging configuration and setup."""

    def test_configure_logging_json_output(self):
        output = StringIO()
        configure_logging(log_level="INFO", json_output=True)

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        handler = logging.StreamHandler(output)
        handler.setLevel(logging.INFO)
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.INFO)

        set_trace_id("trace-abc")
        set_context_id("ctx-1")
        get_logger("test_logging").info("test_message", test_field="test_value")
        handler.flush()

        entry = json.loads(output.getvalue().strip().splitlines()[-1])
        assert entry["event"] == "test_message"
        assert entry["test_field"] == "test_value"
        assert entry["service"] == "ai_brain_orchestrator"
        assert entry["trace_id"] == "trace-abc"
        assert entry["context_id"] == "ctx-1"
        assert entry["level"] == "info"


class TestRequestContext:
    def test_correlation_fields_added_when_set(self):
        set_trace_id("t-1")
        set_request_id("r-1")
        set_user_id("u-1")
        set_context_id("c-1")

        event = add_request_context(None, "info", {"event": "x"})

        assert event["trace_id"] == "t-1"
        assert event["request_id"] == "r-1"
        assert event["user_id"] == "u-1"
        assert event["context_id"] == "c-1"
        assert "timestamp" in event

    def test_unset_fields_are_omitted(self):
        event = add_request_context(None, "info", {"event": "x"})

        assert "trace_id" not in event
        assert "context_id" not in event

    def test_explicit_fields_win(self):
        set_context_id("from-context")

        event = add_request_context(None, "info", {"event": "x", "context_id": "explicit"})

        assert event["context_id"] == "explicit"

    def test_trace_id_roundtrip(self):
        set_trace_id("abc")
        assert get_trace_id() == "abc"
        set_trace_id(None)
        assert get_trace_id() is None


def test_generate_trace_id():
    first = generate_trace_id()

    assert uuid.UUID(first).version == 4
    assert first != generate_trace_id()
