"""Tests for the structlog processor chain."""

import json
import logging

import structlog

from core.logging import _handlers, _processors


def render(processors, event_dict):
    logger = logging.getLogger("items.test")
    logger.setLevel(logging.DEBUG)
    for processor in processors:
        event_dict = processor(logger, "info", event_dict)
    return event_dict


class TestProcessors:

    def test_json_chain_renders_bound_request_id(self, settings):
        settings.log_format = "json"
        processors = _processors(settings)

        structlog.contextvars.bind_contextvars(request_id="req-42")
        try:
            line = render(processors, {"event": "Item created", "item_id": 7})
        finally:
            structlog.contextvars.clear_contextvars()

        record = json.loads(line)
        assert record["event"] == "Item created"
        assert record["request_id"] == "req-42"
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_console_chain_ends_with_console_renderer(self, settings):
        settings.log_format = "console"

        processors = _processors(settings)

        assert processors[0] is structlog.contextvars.merge_contextvars
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        assert structlog.stdlib.add_logger_name not in processors

    def test_log_file_adds_file_handler(self, settings, tmp_path):
        settings.log_file = str(tmp_path / "logs" / "items.log")

        handlers = _handlers(settings)
        try:
            assert len(handlers) == 2
            assert (tmp_path / "logs").is_dir()
        finally:
            for handler in handlers:
                handler.close()
