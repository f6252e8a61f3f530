"""Application logger for bili-comments.

Every request carries the user's Bilibili session cookie, and error messages
from aiohttp may echo request headers. Log lines therefore pass through
CookieMaskingFilter before they reach stderr or the log file.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILE = LOG_DIR / "bili_comments.log"

LOGGER_NAME = "bili_comments"


class CookieMaskingFilter(logging.Filter):
    """Replace session cookie values with [MASKED].

    Covers SESSDATA, bili_jct (CSRF token) and DedeUserID__ckMd5. The message
    is formatted with its arguments first, so a cookie passed as a %-style
    argument is masked as well. Other cookies such as buvid3 are left alone.
    """

    COOKIE_PATTERN = re.compile(r'(SESSDATA|bili_jct|DedeUserID__ckMd5)=[^;\s]+')

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = self.COOKIE_PATTERN.sub(r'\1=[MASKED]', message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def setup_logger(log_level: str = "INFO", mask_logs: bool = True) -> logging.Logger:
    """Configure the "bili_comments" logger once per process.

    Output goes to stderr, since stdout carries the rendered comment page,
    and to LOG_FILE (rotated at 5 MB, three backups). With mask_logs the
    cookie filter sits on both handlers. A second call returns the logger
    unchanged.
    """
    logger = logging.getLogger(LOGGER_NAME)

    if logger.handlers:
        return logger

    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logger.setLevel(log_level)

    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s - %(message)s")

    stderr_handler = logging.StreamHandler(sys.stderr)
    file_handler = logging.handlers.RotatingFileHandler(
        LOG_FILE,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )

    cookie_filter = CookieMaskingFilter() if mask_logs else None
    for handler in (stderr_handler, file_handler):
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        if cookie_filter is not None:
            handler.addFilter(cookie_filter)
        logger.addHandler(handler)

    return logger
