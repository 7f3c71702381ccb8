"""Unit tests for structured logging: context injection and JSON output."""
from __future__ import annotations

import json
import logging
import sys

import pytest

from staff_service.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    get_log_context,
    remove_from_log_context,
    set_log_context,
)


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="staff_service.test",
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


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.mark.unit
class TestLogContext:
    def test_set_and_remove(self):
        set_log_context(request_id="r-1", queue="staff_events")
        remove_from_log_context("queue", "missing")

        assert get_log_context() == {"request_id": "r-1"}

    def test_get_returns_a_copy(self):
        set_log_context(request_id="r-1")
        get_log_context()["request_id"] = "changed"

        assert get_log_context()["request_id"] == "r-1"

    def test_filter_injects_context(self):
        set_log_context(message_id="1700000000000", routing_key="staff.created")
        record = make_record()

        assert ContextInjectingFilter().filter(record) is True
        assert record.message_id == "1700000000000"
        assert record.routing_key == "staff.created"

    def test_explicit_extra_wins_over_context(self):
        set_log_context(queue="staff_events")
        record = make_record(queue="bus_events")

        ContextInjectingFilter().filter(record)

        assert record.queue == "bus_events"


@pytest.mark.unit
class TestJSONFormatter:
    def test_formats_single_json_line(self):
        formatter = JSONFormatter(static={"service": "staff-service"})

        line = formatter.format(make_record("Event published", routing_key="staff.created"))
        data = json.loads(line)

        assert "\n" not in line
        assert data["level"] == "INFO"
        assert data["logger"] == "staff_service.test"
        assert data["message"] == "Event published"
        assert data["service"] == "staff-service"
        assert data["routing_key"] == "staff.created"
        assert data["timestamp"].endswith("Z")

    def test_exception_is_escaped_onto_one_line(self):
        formatter = JSONFormatter()
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record("failed")
            record.exc_info = sys.exc_info()

        line = formatter.format(record)

        assert "\n" not in line
        assert "RuntimeError: boom" in json.loads(line)["exception"]

    def test_non_serializable_extra_uses_str(self):
        formatter = JSONFormatter()

        data = json.loads(formatter.format(make_record(payload=object())))

        assert data["payload"].startswith("<object object")
