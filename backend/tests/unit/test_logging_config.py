"""Unit tests for structured logging"""

import json
import logging

from buildtrack.observability.logging_config import JSONFormatter, RequestIDFilter
from buildtrack.observability.request_id import get_request_id, request_context


def make_record(**extra):
    record = logging.LogRecord("buildtrack.test", logging.INFO, __file__, 1, "bom submitted", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_includes_request_id_and_workflow_fields(self):
        record = make_record(machine="bom", from_status="draft", to_status="submitted", duration_ms=1.5)
        with request_context("req-123"):
            RequestIDFilter().filter(record)

        payload = json.loads(JSONFormatter().format(record))

        assert payload["request_id"] == "req-123"
        assert payload["message"] == "bom submitted"
        assert payload["machine"] == "bom"
        assert payload["to_status"] == "submitted"
        assert payload["duration_ms"] == 1.5

    def test_unknown_extras_are_ignored(self):
        payload = json.loads(JSONFormatter().format(make_record(password="hunter2")))
        assert "password" not in payload


class TestRequestContext:

    def test_context_restores_previous_id(self):
        with request_context("outer"):
            with request_context("inner"):
                assert get_request_id() == "inner"
            assert get_request_id() == "outer"

    def test_generates_id_when_missing(self):
        with request_context() as request_id:
            assert request_id
            assert get_request_id() == request_id
