"""
Tests for logging setup (app.logging_config).
"""

import logging

from app.logging_config import InterceptHandler, setup_logging


def test_root_logger_follows_configured_level():
    try:
        setup_logging("warning")
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert any(isinstance(h, InterceptHandler) for h in root.handlers)
        # Debug records from libraries are filtered before the intercept handler
        assert not logging.getLogger("aiosqlite").isEnabledFor(logging.DEBUG)
    finally:
        setup_logging("INFO")


def test_loguru_only_level_falls_back_to_debug():
    try:
        setup_logging("TRACE")
        assert logging.getLogger().level == logging.DEBUG
    finally:
        setup_logging("INFO")
