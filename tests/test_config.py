"""Tests for configuration management."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

import manifold_tools.core.config as config_module
from manifold_tools.core.config import ConfigError, ConfigLoader, get_config

EXPECTED_TIMEOUT = 30
EXPECTED_SCAN_LIMIT = 200
EXPECTED_MAX_ATTEMPTS = 5
EXPECTED_BACKOFF = 2


class TestConfigLoader:
    """Test suite for ConfigLoader."""

    def test_load_default_config(self) -> None:
        """Load the packaged settings with their environment defaults."""
        loader = ConfigLoader()
        assert loader.get("environment") is not None
        assert loader.get("manifold.base_url") == "https://api.manifold.markets/v0"
        assert loader.get("manifold.timeout") == EXPECTED_TIMEOUT
        assert loader.get("schedule.scan_limit") == EXPECTED_SCAN_LIMIT
        assert loader.get("manifold.api_key") == ""

    def test_get_with_dot_notation(self, tmp_path: Path) -> None:
        """Test getting config values with dot notation."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
manifold:
  api_key: test_key_123
  base_url: https://test.manifold.markets/v0
environment: test
""")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("manifold.api_key") == "test_key_123"
        assert loader.get("manifold.base_url") == "https://test.manifold.markets/v0"
        assert loader.get("environment") == "test"

    def test_get_with_default(self, tmp_path: Path) -> None:
        """Test getting non-existent key returns default."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("environment: test")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("nonexistent.key", "default_value") == "default_value"

    def test_env_var_substitution(self, tmp_path: Path) -> None:
        """Test environment variable substitution."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
manifold:
  api_key: ${TEST_API_KEY}
  base_url: ${TEST_BASE_URL:https://default.com}
""")

        with patch.dict(os.environ, {"TEST_API_KEY": "env_key_123"}):
            loader = ConfigLoader(config_dir=tmp_path)
            assert loader.get("manifold.api_key") == "env_key_123"
            assert loader.get("manifold.base_url") == "https://default.com"

    def test_empty_default_substitutes_empty_string(self, tmp_path: Path) -> None:
        """Substitute an empty string for ``${VAR:}`` when the variable is unset."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("manifold:\n  api_key: ${UNSET_MANIFOLD_TEST_KEY:}\n")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("manifold.api_key") == ""

    def test_local_settings_override(self, tmp_path: Path) -> None:
        """Test that local settings override base settings."""
        base_config = tmp_path / "settings.yaml"
        base_config.write_text("""
manifold:
  api_key: base_key
  base_url: https://base.com
environment: production
""")

        local_config = tmp_path / "settings.local.yaml"
        local_config.write_text("""
manifold:
  api_key: local_key
environment: development
""")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("manifold.api_key") == "local_key"
        assert loader.get("manifold.base_url") == "https://base.com"
        assert loader.get("environment") == "development"

    def test_explicit_config_file_layers_over_defaults(self, tmp_path: Path) -> None:
        """Merge an explicit override file over the directory settings."""
        (tmp_path / "settings.yaml").write_text("risk:\n  min_edge: 0.05\n  min_bet_amount: 1\n")
        override = tmp_path / "override.yaml"
        override.write_text("risk:\n  min_edge: 0.10\n")

        loader = ConfigLoader(config_dir=tmp_path, config_file=override)
        assert loader.get("risk.min_edge") == pytest.approx(0.10)
        assert loader.get("risk.min_bet_amount") == 1

    def test_config_path_env_var(self, tmp_path: Path) -> None:
        """Read the override file from MANIFOLD_CONFIG_PATH."""
        (tmp_path / "settings.yaml").write_text("environment: production\n")
        override = tmp_path / "override.yaml"
        override.write_text("environment: staging\n")

        with patch.dict(os.environ, {"MANIFOLD_CONFIG_PATH": str(override)}):
            loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("environment") == "staging"

    def test_missing_config_file_raises(self, tmp_path: Path) -> None:
        """Raise ConfigError for an explicit config file that does not exist."""
        with pytest.raises(ConfigError, match="Config file not found"):
            ConfigLoader(config_dir=tmp_path, config_file=tmp_path / "missing.yaml")

    def test_non_mapping_file_raises(self, tmp_path: Path) -> None:
        """Raise ConfigError when a settings file holds a list."""
        (tmp_path / "settings.yaml").write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            ConfigLoader(config_dir=tmp_path)

    def test_get_section(self, tmp_path: Path) -> None:
        """Return a nested section as a dict, or empty when absent."""
        (tmp_path / "settings.yaml").write_text(
            "strategy:\n  arbitrage:\n    enabled: true\n  name: x\n"
        )
        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get_section("strategy.arbitrage") == {"enabled": True}
        assert loader.get_section("strategy.missing") == {}
        with pytest.raises(ConfigError, match="must be a dict"):
            loader.get_section("strategy.name")

    def test_full_string_unresolved_env_var_raises_config_error(self, tmp_path: Path) -> None:
        """Raise ConfigError when env var is unset and has no default."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
manifold:
  api_key: ${NONEXISTENT_MANIFOLD_TOOLS_VAR}
""")

        with pytest.raises(ConfigError, match="Required environment variable"):
            ConfigLoader(config_dir=tmp_path)

    def test_embedded_env_var_reference_raises_config_error(self, tmp_path: Path) -> None:
        """Raise ConfigError when an env var reference is embedded in a larger string."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
manifold:
  base_url: https://api.example.com/${NONEXISTENT_PATH_VAR}/v0
""")

        with pytest.raises(ConfigError, match="Unresolved environment variable reference"):
            ConfigLoader(config_dir=tmp_path)

    def test_deep_merge(self, tmp_path: Path) -> None:
        """Test deep merging of nested configurations."""
        base_config = tmp_path / "settings.yaml"
        base_config.write_text("""
manifold:
  api_key: base_key
  timeout: 30
  retry:
    max_attempts: 3
    backoff: 2
""")

        local_config = tmp_path / "settings.local.yaml"
        local_config.write_text("""
manifold:
  api_key: local_key
  retry:
    max_attempts: 5
""")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("manifold.api_key") == "local_key"
        assert loader.get("manifold.timeout") == EXPECTED_TIMEOUT
        assert loader.get("manifold.retry.max_attempts") == EXPECTED_MAX_ATTEMPTS
        assert loader.get("manifold.retry.backoff") == EXPECTED_BACKOFF


class TestGetConfig:
    """Test suite for the lazy singleton get_config() function."""

    def test_returns_same_instance(self) -> None:
        """Return the same loader on repeated calls."""
        with patch.object(config_module, "_config", None):
            first = get_config()
            assert get_config() is first

    def test_returns_config_loader(self) -> None:
        """Return a ConfigLoader built from the packaged settings."""
        with patch.object(config_module, "_config", None):
            assert isinstance(get_config(), ConfigLoader)
