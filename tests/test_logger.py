# tests/test_logger.py
"""Tests for logging setup."""

import logging

from folio.logger import NOISY_LOGGERS, configure_logging


class TestConfigureLogging:
    def test_single_handler(self):
        configure_logging("info")
        configure_logging("DEBUG")

        logger = logging.getLogger("folio")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_numeric_level(self):
        configure_logging(logging.ERROR)
        assert logging.getLogger("folio").level == logging.ERROR

    def test_quiets_third_party_loggers(self):
        configure_logging("DEBUG")
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
