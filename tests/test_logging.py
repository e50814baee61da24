"""Tests for vidgist.logging module."""

from __future__ import annotations

import logging

from vidgist.logging import configure_logging, logger, run_logger


class TestRunLogger:
    def test_prefixes_run_id(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="vidgist"):
            run_logger("abc123").info("Processing %s", "youtube")
        assert caplog.records[-1].getMessage() == "[abc123] Processing youtube"


class TestConfigureLogging:
    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True)
        assert logger.level == logging.DEBUG
        configure_logging(verbose=False)
        assert logger.level == logging.WARNING
        assert logging.getLogger("LiteLLM").level == logging.WARNING
