"""
Unit tests for ConfigManager.

Tests verify:
- TOML loading
- Environment variable overrides
- Missing or malformed files fall back to defaults
- Type-specific getters
"""
from pathlib import Path

import pytest

from stowage.core.config import ConfigManager


def write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "stowage.toml"
    path.write_text(body)
    return path


class TestConfigBasics:
    """Tests for basic ConfigManager functionality."""

    def test_empty_config(self):
        """Verify ConfigManager works without a config file."""
        config = ConfigManager()
        assert config.get("any.key") is None
        assert config.get("any.key", "default") == "default"

    def test_load_toml_file(self, tmp_path):
        """Verify ConfigManager loads TOML config file."""
        path = write_config(
            tmp_path,
            """
[storage.general]
path = "/var/lib/app/general.db"

[migration]
concurrent_domains = true

[migration.general]
target_version = 1
""",
        )

        config = ConfigManager(config_path=path)
        assert config.get("storage.general.path") == "/var/lib/app/general.db"
        assert config.get_bool("migration.concurrent_domains") is True
        assert config.get_int("migration.general.target_version") == 1

    def test_get_int_default_none(self):
        """Verify get_int passes a None default through for absent keys."""
        config = ConfigManager()
        assert config.get_int("migration.secure.target_version", None) is None
        assert config.get_int("migration.secure.target_version") == 0


class TestConfigFallback:
    """Config problems never stop startup."""

    def test_missing_file_uses_defaults(self, tmp_path):
        """Verify a missing file is tolerated."""
        config = ConfigManager(config_path=tmp_path / "nope.toml")
        assert config.get("logging.level", "INFO") == "INFO"

    def test_malformed_file_uses_defaults(self, tmp_path):
        """Verify a file that is not valid TOML is tolerated."""
        path = write_config(tmp_path, "[storage\npath = = 3\n")

        config = ConfigManager(config_path=path)
        assert config.get("storage") is None
        assert config.get("storage.general.path", "./data/general.db") == "./data/general.db"

    def test_non_integer_value_uses_default(self, tmp_path):
        """Verify a malformed number is logged and replaced by the default."""
        path = write_config(tmp_path, '[migration.general]\ntarget_version = "two"\n')

        config = ConfigManager(config_path=path)
        assert config.get_int("migration.general.target_version", None) is None
        assert config.get_int("migration.general.target_version", 3) == 3


class TestEnvOverrides:
    """Tests for STOWAGE_* environment overrides."""

    def test_env_overrides_toml(self, tmp_path, monkeypatch):
        """Verify environment variables take precedence over the file."""
        path = write_config(tmp_path, "[migration.general]\ntarget_version = 1\n")
        monkeypatch.setenv("STOWAGE_MIGRATION_GENERAL_TARGET_VERSION", "2")

        config = ConfigManager(config_path=path)
        assert config.get_int("migration.general.target_version") == 2

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("true", True),
            ("off", False),
            ("42", 42),
            ("0.5", 0.5),
            ("./data/x.db", "./data/x.db"),
        ],
    )
    def test_env_value_parsing(self, monkeypatch, raw, expected):
        """Verify env strings are converted to the obvious type."""
        monkeypatch.setenv("STOWAGE_SOME_KEY", raw)
        assert ConfigManager().get("some.key") == expected

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("MYAPP_LOGGING_LEVEL", "ERROR")
        config = ConfigManager(env_prefix="MYAPP_")
        assert config.get("logging.level") == "ERROR"
