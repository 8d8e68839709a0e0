"""
Tests for structured logging configuration and the request logging middleware.
"""
import json
import logging
import sys
from unittest.mock import patch

import pytest

from app.core.logging_config import JSONFormatter, request_id_context, setup_logging


def make_record(level=logging.INFO, msg="Evaluated session 3", **extra):
    record = logging.LogRecord(
        name="app.services.exam_sessions",
        level=level,
        pathname="exam_sessions.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for the JSONFormatter class."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(make_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "app.services.exam_sessions"
        assert entry["message"] == "Evaluated session 3"
        assert entry["timestamp"].endswith("+00:00")
        assert "request_id" not in entry
        assert "source" not in entry

    def test_request_id_from_context(self):
        token = request_id_context.set("req-123")
        try:
            entry = json.loads(JSONFormatter().format(make_record()))
        finally:
            request_id_context.reset(token)

        assert entry["request_id"] == "req-123"

    def test_exam_fields_from_extra(self):
        record = make_record(
            user_id="user-1",
            session_id=3,
            test_id="T1",
            event_data={"event": "exam.session_evaluated"},
        )

        entry = json.loads(JSONFormatter().format(record))

        assert entry["user_id"] == "user-1"
        assert entry["session_id"] == 3
        assert entry["test_id"] == "T1"
        assert entry["event_data"] == {"event": "exam.session_evaluated"}

    def test_http_fields_from_extra(self):
        record = make_record(
            method="POST",
            path="/v1/exam/sessions",
            status_code=201,
            duration_ms=12.5,
            client_host="10.0.0.1",
            user_identifier="user-1",
        )

        entry = json.loads(JSONFormatter().format(record))

        assert entry["method"] == "POST"
        assert entry["status_code"] == 201
        assert entry["duration_ms"] == 12.5
        assert entry["user_identifier"] == "user-1"

    def test_errors_carry_source_and_exception(self):
        try:
            raise ValueError("unresolvable order")
        except ValueError:
            record = make_record(level=logging.ERROR, msg="Submit failed")
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))

        assert entry["source"] == "exam_sessions.py:42"
        assert "ValueError: unresolvable order" in entry["exception"]

    def test_non_serializable_extra(self):
        record = make_record(event_data={"at": object()})

        entry = json.loads(JSONFormatter().format(record))

        assert isinstance(entry["event_data"]["at"], str)


class TestSetupLogging:
    """Tests for the setup_logging function."""

    @pytest.mark.parametrize(
        "env,formatter", [("production", "json"), ("development", "default")]
    )
    @patch("app.core.logging_config.settings")
    def test_formatter_by_environment(self, mock_settings, env, formatter):
        mock_settings.ENV = env
        mock_settings.DEBUG = False
        mock_settings.LOG_LEVEL = "INFO"

        with patch("logging.config.dictConfig") as mock_dictconfig:
            setup_logging()

        config = mock_dictconfig.call_args[0][0]
        assert config["handlers"]["console"]["formatter"] == formatter
        assert config["loggers"]["app"]["propagate"] is False

    @patch("app.core.logging_config.settings")
    def test_unknown_level_falls_back_to_info(self, mock_settings):
        mock_settings.ENV = "development"
        mock_settings.DEBUG = False
        mock_settings.LOG_LEVEL = "chatty"

        with patch("logging.config.dictConfig") as mock_dictconfig:
            setup_logging()

        assert mock_dictconfig.call_args[0][0]["root"]["level"] == logging.INFO


class TestRequestLoggingMiddleware:
    """Tests for request/response logging."""

    def test_request_id_echoed(self, client):
        response = client.get("/v1/ping", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"

    def test_request_id_generated(self, client):
        response = client.get("/v1/ping")

        assert len(response.headers["X-Request-ID"]) == 36

    def test_completion_logged_with_user(self, client, user_headers):
        with patch("app.middleware.request_logging.logger") as mock_logger:
            client.get("/v1/exam/tests/missing", headers=user_headers)

        completed = [
            call
            for call in mock_logger.log.call_args_list
            if call[0][:2] == (logging.WARNING, "Client error response")
        ]
        assert len(completed) == 1
        extra = completed[0][1]["extra"]
        assert extra["status_code"] == 404
        assert extra["user_identifier"] == "user-1"
