"""
Configuration management with TOML + environment variable support.

Configuration hierarchy (later overrides earlier):
1. Default values in code
2. TOML file
3. Environment variables (STOWAGE_* prefix)

A config file that is missing or cannot be parsed never stops startup:
the problem is logged and the defaults apply.
"""
import os
import tomllib
from pathlib import Path
from typing import Any, Optional

import structlog

log = structlog.get_logger()

DEFAULT_GENERAL_DB_PATH = "./data/general.db"
DEFAULT_SECURE_DB_PATH = "./data/secure.db"


class ConfigManager:
    """Centralized configuration with TOML + env var support.

    Usage:
        config = ConfigManager(Path("config/stowage.toml"))
        level = config.get("logging.level", "INFO")
        target = config.get_int("migration.general.target_version", 2)
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        env_prefix: str = "STOWAGE_",
    ) -> None:
        """Initialize ConfigManager.

        Args:
            config_path: Path to TOML config file (optional)
            env_prefix: Prefix for environment variable overrides
        """
        self._data: dict[str, Any] = {}
        self._env_prefix = env_prefix

        if config_path:
            self._load_toml(config_path)

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file, falling back to defaults."""
        if not path.exists():
            log.warning("config_file_missing", path=str(path))
            return

        try:
            with open(path, "rb") as f:
                self._data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            log.warning("config_load_failed", path=str(path), error=str(e))
            self._data = {}

    def _get_nested(self, data: dict[str, Any], key: str) -> tuple[bool, Any]:
        """Get a nested value using dot notation.

        Returns (found, value) tuple.
        """
        parts = key.split(".")
        current = data

        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return False, None
            current = current[part]

        return True, current

    def _get_env_value(self, key: str) -> tuple[bool, Any]:
        """Get value from environment variable.

        Converts key like "storage.secure.key" to "STOWAGE_STORAGE_SECURE_KEY".
        """
        env_key = self._env_prefix + key.upper().replace(".", "_")
        if env_key in os.environ:
            value = os.environ[env_key]
            return True, self._parse_env_value(value)
        return False, None

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable string to appropriate type."""
        # Boolean
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        # Number
        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with dot notation.

        Environment variables take precedence over TOML values.

        Args:
            key: Dot-notation key like "logging.level"
            default: Default value if key not found

        Returns:
            Configuration value
        """
        found, value = self._get_env_value(key)
        if found:
            return value

        found, value = self._get_nested(self._data, key)
        if found:
            return value

        return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get configuration value as boolean."""
        value = self.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes", "on")
        return bool(value)

    def get_int(self, key: str, default: Optional[int] = 0) -> Optional[int]:
        """Get configuration value as integer.

        Args:
            key: Dot-notation key
            default: Returned unchanged when the key is absent or not an integer

        Returns:
            Integer value
        """
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            log.warning("config_value_invalid", key=key, value=value, expected="int")
            return default
