"""
Tests for the logging helpers.
"""

import structlog

from phone_agent.utils.logger import (
    LOG_VALUE_LIMIT,
    LogContext,
    add_service_context,
    truncate_long_values,
)


class TestProcessors:
    def test_long_values_truncated(self):
        event = {"event": "Decision failed", "error": "x" * (LOG_VALUE_LIMIT + 50), "step": 3}

        result = truncate_long_values(None, "info", event)

        assert result["error"].startswith("x" * LOG_VALUE_LIMIT + "...")
        assert result["error"].endswith(f"({LOG_VALUE_LIMIT + 50} chars)")
        assert result["step"] == 3

    def test_event_message_kept(self):
        message = "y" * (LOG_VALUE_LIMIT * 2)
        assert truncate_long_values(None, "info", {"event": message})["event"] == message

    def test_service_context(self):
        result = add_service_context(None, "info", {"event": "x"})
        assert result["service"] == "phone-agent"
        assert "version" in result


class TestLogContext:
    def test_binds_and_clears(self):
        with LogContext(goal="Open settings"):
            assert structlog.contextvars.get_contextvars()["goal"] == "Open settings"

        assert "goal" not in structlog.contextvars.get_contextvars()

    def test_nested_contexts_restore_outer_values(self):
        with LogContext(request_id="req-1", goal="outer"):
            with LogContext(goal="inner"):
                assert structlog.contextvars.get_contextvars()["goal"] == "inner"

            context = structlog.contextvars.get_contextvars()
            assert context["goal"] == "outer"
            assert context["request_id"] == "req-1"

        context = structlog.contextvars.get_contextvars()
        assert "goal" not in context
        assert "request_id" not in context
