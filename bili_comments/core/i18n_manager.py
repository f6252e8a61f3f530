"""Thread-safe singleton I18nManager for the strings used in rendered output."""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict

LOCALE_DIR = Path(__file__).resolve().parent.parent / "resources" / "locales"

logger = logging.getLogger("bili_comments")


class I18nManager:
    """Thread-safe singleton manager for internationalization.

    Loads locale JSON files and provides access to translated strings.
    Uses dot-notation keys (e.g., "markdown.total_count") and supports
    placeholder substitution.
    """

    _instance = None
    _lock = threading.RLock()

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._data: Dict[str, Any] = {}
        self._locale: str = "zh_CN"
        self._locale_dir: Path = LOCALE_DIR
        self._initialized = True

    def load_locale(self, locale: str) -> None:
        """Load LOCALE_DIR/{locale}.json.

        If the file is missing or unparsable, logs a warning and keeps current data.
        """
        with self._lock:
            locale_file = self._locale_dir / f"{locale}.json"

            if not locale_file.exists():
                logger.warning(f"Locale file not found: {locale_file}")
                return

            try:
                with open(locale_file, "r", encoding="utf-8") as f:
                    self._data = json.load(f)
                    self._locale = locale
                logger.info(f"Loaded locale: {locale}")
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Failed to load locale file {locale_file}: {e}")

    def ensure_loaded(self, locale: str = "zh_CN") -> "I18nManager":
        """Load ``locale`` unless some locale is already loaded."""
        with self._lock:
            if not self._data:
                self.load_locale(locale)
            return self

    def get(self, key: str, **kwargs) -> str:
        """Get translated string by dot-notation key.

        Returns the key itself if not found. Never raises.

        Examples:
            get("markdown.total_count", count=3) -> "📊 **评论总数**: 3 条"
        """
        with self._lock:
            template = self._resolve(key)

            if not kwargs:
                return template

            try:
                return template.format_map(kwargs)
            except (KeyError, ValueError) as e:
                logger.warning(f"Failed to format i18n string for key '{key}': {e}")
                return template

    @property
    def locale(self) -> str:
        with self._lock:
            return self._locale

    @classmethod
    def reset(cls) -> None:
        """Reset singleton instance (for testing)."""
        with cls._lock:
            cls._instance = None

    def _resolve(self, key: str) -> str:
        """Walk nested dict by dot-separated key. Caller must hold lock."""
        node = self._data

        for part in key.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return key

        return node if isinstance(node, str) else key
