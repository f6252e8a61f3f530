"""Thread-safe singleton configuration manager for bili-comments."""

import logging
import threading
from pathlib import Path
from typing import Any

import yaml

from bili_comments.core.exceptions import ConfigError

logger = logging.getLogger(__name__)


# Default configuration template
DEFAULT_CONFIG = {
    "app": {
        "locale": "zh_CN",
        "version": "2.0.0",
        "log_level": "INFO",
    },
    "bilibili": {
        "timeout_sec": 15,
        "page_timeout_sec": 10,
        "reply_timeout_sec": 10,
        "key_cache_hours": 12,
    },
    "retry": {
        "max_attempts": 3,
        "delay_ms": 1000,
    },
    "security": {
        "mask_logs": True,
    },
}

SUPPORTED_LOCALES = ("zh_CN", "en_US")

_TIMEOUT_KEYS = (
    "bilibili.timeout_sec",
    "bilibili.page_timeout_sec",
    "bilibili.reply_timeout_sec",
)

# Keys read at startup that carry validation rules
_VALIDATED_KEYS = ("app.locale", "retry.max_attempts", "retry.delay_ms", "bilibili.key_cache_hours") + _TIMEOUT_KEYS


class ConfigManager:
    """Thread-safe singleton configuration manager.

    Manages application configuration with:
    - Singleton pattern ensuring only one instance exists
    - Thread-safe operations using RLock
    - Automatic settings.yaml creation if missing
    - Dot-notation key access (e.g., "retry.max_attempts")
    - Validation rules for critical settings
    """

    _instance = None
    _lock = threading.RLock()

    def __new__(cls):
        """Ensure singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize configuration manager."""
        # Prevent re-initialization
        if hasattr(self, '_initialized'):
            return

        with self._lock:
            if hasattr(self, '_initialized'):
                return

            # Path resolution
            self.PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
            self.CONFIG_PATH = self.PROJECT_ROOT / "config" / "settings.yaml"

            # Internal state
            self._config = {}
            self._instance_lock = threading.RLock()

            # Load or create configuration
            self._load_or_create_config()

            self._initialized = True

    def _load_or_create_config(self):
        """Load settings.yaml or create it from defaults."""
        if self.CONFIG_PATH.exists():
            try:
                with open(self.CONFIG_PATH, 'r', encoding='utf-8') as f:
                    self._config = yaml.safe_load(f) or {}
                self._validate_loaded_config()
                logger.info(f"Loaded configuration from {self.CONFIG_PATH}")
            except yaml.YAMLError as e:
                logger.error(f"Failed to parse YAML at {self.CONFIG_PATH}: {e}")
                logger.warning("Using DEFAULT_CONFIG due to parse error")
                self._config = self._deep_copy(DEFAULT_CONFIG)
            except OSError as e:
                logger.error(f"Unexpected error loading config: {e}")
                logger.warning("Using DEFAULT_CONFIG")
                self._config = self._deep_copy(DEFAULT_CONFIG)
        else:
            logger.info(f"Config file not found at {self.CONFIG_PATH}")
            self.CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
            self._config = self._deep_copy(DEFAULT_CONFIG)
            self.save()
            logger.info(f"Created default configuration at {self.CONFIG_PATH}")

    def _validate_loaded_config(self):
        """Apply the update() rules to values read from disk.

        Clamped values are kept; values that fail validation fall back to
        DEFAULT_CONFIG. Nothing is written back to the file.
        """
        if not isinstance(self._config, dict):
            logger.warning(f"Configuration at {self.CONFIG_PATH} is not a mapping. Using DEFAULT_CONFIG.")
            self._config = self._deep_copy(DEFAULT_CONFIG)
            return

        for section, defaults in DEFAULT_CONFIG.items():
            if section in self._config and not isinstance(self._config[section], dict):
                logger.warning(f"Config section '{section}' is not a mapping. Using defaults for it.")
                self._config[section] = self._deep_copy(defaults)

        missing = object()
        for key in _VALIDATED_KEYS:
            value = self.get(key, missing)
            if value is missing:
                continue
            validated = self._validate_key_value(key, value)
            if validated is None:
                section, name = key.split('.')
                validated = DEFAULT_CONFIG[section][name]
            self.set(key, validated)

    def get(self, key: str, default=None) -> Any:
        """Get configuration value using dot-notation key.

        Args:
            key: Dot-separated key path (e.g., "retry.delay_ms")
            default: Value to return if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get("app.locale")
            'zh_CN'
            >>> config.get("retry.max_attempts")
            3
        """
        with self._instance_lock:
            parts = key.split('.')
            value = self._config

            for part in parts:
                if isinstance(value, dict) and part in value:
                    value = value[part]
                else:
                    return default

            return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot-notation key.

        Note: This does NOT save to disk. Use save() to persist changes.
        """
        with self._instance_lock:
            parts = key.split('.')
            target = self._config

            for part in parts[:-1]:
                if part not in target:
                    target[part] = {}
                target = target[part]

            target[parts[-1]] = value

    def update(self, changes: dict) -> None:
        """Batch update configuration from flat dict of dot-notation keys.

        Applies validation rules and saves to disk once after all updates.

        Validation Rules:
            - app.locale: must be "zh_CN" or "en_US"
            - retry.max_attempts: minimum 1
            - retry.delay_ms: minimum 0
            - bilibili.*timeout_sec, bilibili.key_cache_hours: minimum 1
        """
        with self._instance_lock:
            validated_changes = {}

            for key, value in changes.items():
                validated_value = self._validate_key_value(key, value)
                if validated_value is not None:
                    validated_changes[key] = validated_value

            for key, value in validated_changes.items():
                self.set(key, value)

            self.save()

    def _validate_key_value(self, key: str, value: Any) -> Any:
        """Apply validation rules to key-value pair.

        Returns:
            Validated value or None if invalid (will be ignored)
        """
        if key == "app.locale":
            if value not in SUPPORTED_LOCALES:
                logger.warning(f"Invalid locale '{value}'. Must be one of {SUPPORTED_LOCALES}. Ignoring.")
                return None
            return value

        if key == "retry.max_attempts":
            return self._clamp_int(key, value, minimum=1)

        if key == "retry.delay_ms":
            return self._clamp_int(key, value, minimum=0)

        if key in _TIMEOUT_KEYS or key == "bilibili.key_cache_hours":
            return self._clamp_int(key, value, minimum=1)

        return value

    @staticmethod
    def _clamp_int(key: str, value: Any, minimum: int):
        try:
            number = int(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid {key} '{value}'. Must be int. Ignoring.")
            return None
        if number < minimum:
            logger.warning(f"{key} {number} < {minimum}. Forcing to {minimum}.")
            return minimum
        return number

    def save(self) -> None:
        """Write current configuration to settings.yaml."""
        with self._instance_lock:
            try:
                self.CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
                with open(self.CONFIG_PATH, 'w', encoding='utf-8') as f:
                    yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
                logger.debug(f"Saved configuration to {self.CONFIG_PATH}")
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Failed to save configuration: {e}")
                raise ConfigError(f"Failed to save configuration: {e}")

    @classmethod
    def reset(cls) -> None:
        """Reset singleton instance (for testing)."""
        with cls._lock:
            cls._instance = None

    @staticmethod
    def _deep_copy(obj):
        """Create a deep copy of nested dict/list structures."""
        if isinstance(obj, dict):
            return {k: ConfigManager._deep_copy(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [ConfigManager._deep_copy(item) for item in obj]
        else:
            return obj
