"""
Unit tests for structured logging processors.
"""

import pytest

from shared.logging import (
    add_correlation_context,
    add_service_context,
    clear_context,
    redact_sensitive_fields,
    set_request_id,
    set_user_context,
)


class TestLoggingProcessors:
    """Test cases for the structlog processors."""

    @pytest.fixture(autouse=True)
    def reset_context(self):
        clear_context()
        yield
        clear_context()

    def test_service_and_component_from_logger_name(self):
        event = add_service_context(None, "info", {"logger": "texts.cache.derived", "event": "x"})

        assert event["service"] == "texts"
        assert event["component"] == "cache.derived"

    def test_correlation_fields(self):
        """Test request and user ids are merged into events."""
        request_id = set_request_id("req-1")
        set_user_context("a" * 32)

        event = add_correlation_context(None, "info", {"event": "x"})

        assert request_id == "req-1"
        assert event["request_id"] == "req-1"
        assert event["user_id"] == "a" * 32

    def test_explicit_values_win(self):
        set_user_context("a" * 32)

        event = add_correlation_context(None, "info", {"event": "x", "user_id": "b" * 32})

        assert event["user_id"] == "b" * 32

    def test_cleared_context_adds_nothing(self):
        set_request_id("req-1")
        clear_context()

        assert add_correlation_context(None, "info", {"event": "x"}) == {"event": "x"}

    def test_generated_request_id(self):
        assert len(set_request_id()) == 32

    def test_credentials_are_redacted(self):
        event = redact_sensitive_fields(None, "info", {
            "event": "Login failed",
            "email": "alice@example.com",
            "password": "secret123",
            "token": "eyJ...",
        })

        assert event["password"] == "***"
        assert event["token"] == "***"
        assert event["email"] == "alice@example.com"
