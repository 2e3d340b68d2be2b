"""Tests for amqp_ingest.logging."""

from __future__ import annotations

import logging

import structlog

from amqp_ingest.logging import setup_logging


class TestSetupLogging:
    def test_json_mode(self):
        setup_logging(json=True, level="INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_console_mode(self):
        setup_logging(json=False, level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG

    def test_level_case_insensitive(self):
        setup_logging(level="warning")
        root = logging.getLogger()
        assert root.level == logging.WARNING

    def test_replaces_existing_handlers(self):
        root = logging.getLogger()
        root.addHandler(logging.StreamHandler())
        root.addHandler(logging.StreamHandler())
        assert len(root.handlers) >= 2
        setup_logging()
        assert len(root.handlers) == 1

    def test_client_libraries_quiet_at_info(self):
        setup_logging(level="INFO")
        for name in ("aio_pika", "aiormq", "aiokafka"):
            assert logging.getLogger(name).level == logging.WARNING

    def test_client_libraries_verbose_at_debug(self):
        setup_logging(level="debug")
        assert logging.getLogger("aio_pika").level == logging.DEBUG

    def test_structlog_produces_output(self, capsys):
        setup_logging(json=True, level="DEBUG")
        logger = structlog.get_logger("test_logger")
        logger.info("test_event", key="value")
        out = capsys.readouterr().out
        assert "test_event" in out
