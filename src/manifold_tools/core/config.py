"""Configuration management for the Manifold trading tools."""

import os
import re
from pathlib import Path
from typing import Any, cast

import yaml
from dotenv import load_dotenv

_CONFIG_PATH_ENV = "MANIFOLD_CONFIG_PATH"


class ConfigError(Exception):
    """Raise when configuration loading or validation fails."""


class ConfigLoader:
    """Load and manage configuration from YAML files with environment variable substitution."""

    def __init__(self, config_dir: Path | None = None, config_file: Path | None = None) -> None:
        """Initialize the config loader.

        Load environment variables from a ``.env`` file (if present) and
        then read YAML configuration.  An explicit ``config_file`` (or the
        ``MANIFOLD_CONFIG_PATH`` environment variable) is layered over the
        packaged defaults.

        Args:
            config_dir: Directory containing config files. Defaults to src/manifold_tools/config.
            config_file: Optional YAML file deep-merged over the directory settings.

        """
        load_dotenv()
        if config_dir is None:
            # Default to config directory relative to this file
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = Path(config_dir)
        if config_file is None and os.getenv(_CONFIG_PATH_ENV):
            config_file = Path(os.environ[_CONFIG_PATH_ENV])
        self.config_file = config_file
        self._config: dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML files."""
        settings_file = self.config_dir / "settings.yaml"
        if settings_file.exists():
            self._config = self._read_yaml(settings_file)

        local_settings = self.config_dir / "settings.local.yaml"
        if local_settings.exists():
            self._deep_merge(self._config, self._read_yaml(local_settings))

        if self.config_file is not None:
            if not self.config_file.exists():
                msg = f"Config file not found: {self.config_file}"
                raise ConfigError(msg)
            self._deep_merge(self._config, self._read_yaml(self.config_file))

        self._config = self._substitute_env_vars(self._config)

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        """Read one YAML mapping from disk.

        Args:
            path: File to read.

        Returns:
            Parsed mapping (empty for an empty file).

        Raises:
            ConfigError: If the file does not hold a mapping.

        """
        with path.open() as f:
            data: Any = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            msg = f"{path} must contain a mapping, got {type(data).__name__}"
            raise ConfigError(msg)
        return cast("dict[str, Any]", data)

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> None:
        """Deep merge override dict into base dict.

        Args:
            base: Base dictionary to merge into (modified in place).
            override: Dictionary with values to override.

        """
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], cast("dict[str, Any]", value))
            else:
                base[key] = value

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute environment variables in config.

        Supports format: ${VAR_NAME:default_value} or ${VAR_NAME}

        Args:
            config: Configuration value (dict, list, or str).

        Returns:
            Configuration with environment variables substituted.

        """
        if isinstance(config, dict):
            return {
                k: self._substitute_env_vars(v)
                for k, v in config.items()  # pyright: ignore[reportUnknownVariableType]
            }
        if isinstance(config, list):
            return [
                self._substitute_env_vars(item)
                for item in config  # pyright: ignore[reportUnknownVariableType]
            ]
        if isinstance(config, str) and config.startswith("${") and config.endswith("}"):
            var_expr = config[2:-1]
            if ":" in var_expr:
                var_name, default = var_expr.split(":", 1)
            else:
                var_name, default = var_expr, None

            value = os.getenv(var_name, default)
            if value is None:
                msg = f"Required environment variable ${{{var_name}}} is not set and has no default"
                raise ConfigError(msg)
            return value

        if isinstance(config, str) and re.search(r"\$\{[^}]+\}", config):
            msg = f"Unresolved environment variable reference in: {config}"
            raise ConfigError(msg)

        return config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key.

        Args:
            key: Configuration key in dot notation (e.g., 'risk.kelly_fraction').
            default: Default value if key not found.

        Returns:
            Configuration value.

        """
        keys = key.split(".")
        current: Any = self._config
        for k in keys:
            if isinstance(current, dict):
                current = cast("dict[str, Any]", current).get(k)
                if current is None:
                    return default
            else:
                return default
        return current  # pyright: ignore[reportReturnType]

    def get_section(self, key: str) -> dict[str, Any]:
        """Get a configuration section as a dictionary.

        Args:
            key: Section key in dot notation (e.g., 'strategy.arbitrage').

        Returns:
            The section mapping, or an empty dict when the section is absent.

        Raises:
            ConfigError: If the value at ``key`` is not a dictionary.

        """
        result: Any = self.get(key, {})
        if isinstance(result, dict):
            return cast("dict[str, Any]", result)
        msg = f"{key} config must be a dict, got {type(result).__name__}"
        raise ConfigError(msg)


_config: ConfigLoader | None = None


def get_config() -> ConfigLoader:
    """Return the global ``ConfigLoader`` singleton, creating it on first use.

    Lazy initialisation avoids side effects (file I/O, ``load_dotenv``)
    at import time and makes testing easier.

    Returns:
        The shared ``ConfigLoader`` instance.

    """
    global _config  # noqa: PLW0603
    if _config is None:
        _config = ConfigLoader()
    return _config
