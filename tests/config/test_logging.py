"""Tests for structlog configuration."""

import logging

import structlog

from formctl.config.logging import LOGGER_NAME, configure_logging


class TestConfigureLogging:
    def test_default_level(self) -> None:
        configure_logging()
        assert logging.getLogger(LOGGER_NAME).level == logging.WARNING
        assert logging.getLogger().level == logging.WARNING

    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger(LOGGER_NAME).level == logging.DEBUG
        configure_logging()

    def test_handler_replaced_not_stacked(self) -> None:
        configure_logging()
        configure_logging()
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_json_renderer(self) -> None:
        configure_logging(log_json=True)
        formatter = logging.getLogger().handlers[0].formatter
        assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
        record = logging.LogRecord(
            LOGGER_NAME, logging.WARNING, __file__, 1, "hello %s", ("world",), None
        )
        assert '"event": "hello world"' in formatter.format(record)
        configure_logging()
