"""Tests for structured logging."""

import asyncio
import json
import logging
import pytest

from app.core.logging import (
    ContextFilter,
    JSONFormatter,
    LogContext,
    TextFormatter,
    configure_logging,
    get_logger,
)


def _record(msg="Test message", level=logging.INFO, name="test"):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_format_basic_message(self):
        """Basic message is formatted as JSON."""
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data

    def test_format_with_exception(self):
        """JSON includes exception info."""
        try:
            raise ValueError("Test error")
        except ValueError:
            import sys
            exc_info = sys.exc_info()

        record = _record("Error occurred", logging.ERROR)
        record.exc_info = exc_info

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError" in data["exception"]

    def test_format_with_extra_fields(self):
        """JSON includes extra fields."""
        record = _record()
        record.summons_id = "abc123"
        record.section_key = "feiten"

        data = json.loads(JSONFormatter().format(record))

        assert data["summons_id"] == "abc123"
        assert data["section_key"] == "feiten"


class TestTextFormatter:
    """Tests for text formatter."""

    def test_format_readable(self):
        """Text format is human-readable."""
        output = TextFormatter().format(_record("Hello world", name="test.module"))

        assert "INFO" in output
        assert "test.module" in output
        assert "Hello world" in output


class TestLogContext:
    """Tests for LogContext field binding."""

    def test_fields_bound_inside_context(self):
        """Fields are visible inside the block and gone after it."""
        with LogContext(summons_id="s-1", section_key="feiten"):
            assert LogContext.current() == {"summons_id": "s-1", "section_key": "feiten"}

        assert "summons_id" not in LogContext.current()

    def test_nested_contexts_restore(self):
        """An inner context restores the outer value on exit."""
        with LogContext(section_key="feiten"):
            with LogContext(section_key="vorderingen"):
                assert LogContext.current()["section_key"] == "vorderingen"
            assert LogContext.current()["section_key"] == "feiten"

    def test_filter_copies_fields(self):
        """ContextFilter puts bound fields on the record."""
        record = _record()

        with LogContext(request_id="r-1"):
            ContextFilter().filter(record)

        assert record.request_id == "r-1"

    @pytest.mark.asyncio
    async def test_tasks_are_isolated(self):
        """Concurrent tasks do not see each other's fields."""
        seen = {}

        async def work(key):
            with LogContext(section_key=key):
                await asyncio.sleep(0.01)
                seen[key] = LogContext.current()["section_key"]

        await asyncio.gather(work("feiten"), work("vorderingen"))

        assert seen == {"feiten": "feiten", "vorderingen": "vorderingen"}


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_json_format(self):
        """Can configure JSON format."""
        configure_logging(level="DEBUG", format_type="json")
        logger = get_logger("test.json")

        # Should not raise
        logger.info("Test message")

    def test_configure_level(self):
        """Log level is respected."""
        configure_logging(level="ERROR", format_type="text")
        logger = get_logger("test.level")

        assert logger.getEffectiveLevel() <= logging.ERROR

    def test_handler_carries_context_filter(self):
        """The root handler injects LogContext fields."""
        configure_logging(level="INFO", format_type="text")

        handler = logging.getLogger().handlers[0]

        assert any(isinstance(f, ContextFilter) for f in handler.filters)


class TestGetLogger:
    """Tests for get_logger function."""

    def test_same_name_same_logger(self):
        """Same name returns same logger."""
        assert get_logger("same.name") is get_logger("same.name")
