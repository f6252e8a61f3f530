"""Tests for logger setup and cookie masking."""

import logging
from unittest.mock import patch

import pytest

from bili_comments.core import logger as logger_module
from bili_comments.core.logger import CookieMaskingFilter, setup_logger


def _record(msg, args=None):
    return logging.LogRecord("bili_comments", logging.INFO, __file__, 1, msg, args, None)


@pytest.fixture
def clean_logger(tmp_dir):
    """Point the log file at tmp_dir and drop handlers added by the test."""
    app_logger = logging.getLogger("bili_comments")
    saved_handlers = list(app_logger.handlers)
    saved_level = app_logger.level
    app_logger.handlers.clear()
    with patch.object(logger_module, "LOG_DIR", tmp_dir / "logs"), \
            patch.object(logger_module, "LOG_FILE", tmp_dir / "logs" / "bili_comments.log"):
        yield app_logger
    for handler in app_logger.handlers:
        handler.close()
    app_logger.handlers[:] = saved_handlers
    app_logger.setLevel(saved_level)


class TestCookieMaskingFilter:
    def test_masks_session_cookies(self):
        record = _record("Cookie: SESSDATA=secret123; bili_jct=tok; buvid3=keep")
        CookieMaskingFilter().filter(record)

        assert "secret123" not in record.getMessage()
        assert "tok" not in record.getMessage()
        assert "SESSDATA=[MASKED]" in record.getMessage()
        assert "buvid3=keep" in record.getMessage()

    def test_masks_cookie_passed_as_argument(self):
        record = _record("Sending %s", ("SESSDATA=secret123",))
        CookieMaskingFilter().filter(record)

        assert record.getMessage() == "Sending SESSDATA=[MASKED]"

    def test_clean_message_is_untouched(self):
        record = _record("Loaded locale: %s", ("zh_CN",))
        assert CookieMaskingFilter().filter(record)
        assert record.msg == "Loaded locale: %s"
        assert record.args == ("zh_CN",)


class TestSetupLogger:
    def test_adds_stderr_and_file_handlers(self, clean_logger, tmp_dir):
        app_logger = setup_logger("DEBUG")

        assert app_logger is clean_logger
        assert app_logger.level == logging.DEBUG
        assert len(app_logger.handlers) == 2
        assert (tmp_dir / "logs").is_dir()
        assert all(
            any(isinstance(f, CookieMaskingFilter) for f in handler.filters)
            for handler in app_logger.handlers
        )

    def test_second_call_keeps_handlers(self, clean_logger):
        setup_logger()
        setup_logger()
        assert len(clean_logger.handlers) == 2

    def test_file_output_is_masked(self, clean_logger, tmp_dir):
        app_logger = setup_logger()
        app_logger.info("Cookie: SESSDATA=secret123")
        for handler in app_logger.handlers:
            handler.flush()

        content = (tmp_dir / "logs" / "bili_comments.log").read_text(encoding="utf-8")
        assert "SESSDATA=[MASKED]" in content
        assert "secret123" not in content

    def test_masking_can_be_disabled(self, clean_logger):
        app_logger = setup_logger(mask_logs=False)
        assert all(not handler.filters for handler in app_logger.handlers)
