"""
Configuration loader for typed_graphql.

This module handles loading configuration from a JSON file and from
environment variables. Environment values win over file values.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .models import GlobalConfig


class ConfigLoader:
    """Configuration loader with support for file and environment sources."""

    def __init__(self, env_prefix: str = "TYPED_GRAPHQL_") -> None:
        """
        Initialize configuration loader.

        Args:
            env_prefix: Prefix of the environment variables to read
        """
        self.config_paths = [
            Path("typed_graphql.json"),
            Path("config/typed_graphql.json"),
            Path.home() / ".typed_graphql" / "config.json",
        ]
        self.env_prefix = env_prefix

    def load_config(self, config_file: Optional[Union[str, Path]] = None) -> GlobalConfig:
        """
        Load configuration from all available sources.

        Args:
            config_file: Specific config file to load

        Returns:
            GlobalConfig instance with merged configuration

        Raises:
            ValueError: If a file cannot be parsed or the merged result is invalid
        """
        config_data: Dict[str, Any] = {}

        file_config = self._load_from_file(config_file)
        if file_config:
            config_data.update(file_config)

        env_config = self._load_from_environment()
        if env_config:
            config_data = self._deep_merge(config_data, env_config)

        return GlobalConfig(**config_data)

    def _load_from_file(
        self, config_file: Optional[Union[str, Path]] = None
    ) -> Optional[Dict[str, Any]]:
        """Load configuration from file."""
        if config_file:
            config_path = Path(config_file)
            if config_path.exists():
                return self._parse_config_file(config_path)
            raise ValueError(f"Config file not found: {config_path}")

        for config_path in self.config_paths:
            if config_path.exists():
                return self._parse_config_file(config_path)

        return None

    def _parse_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Parse a JSON configuration file."""
        if config_path.suffix.lower() != ".json":
            raise ValueError(f"Unsupported config file format: {config_path.suffix}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                return json.load(f) or {}
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"Failed to parse config file {config_path}: {e}")

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        # Values stay strings; pydantic coerces them to the field types
        env_mappings = {
            f"{self.env_prefix}ENDPOINT": ("client", "endpoint"),
            f"{self.env_prefix}TIMEOUT": ("client", "timeout"),
            f"{self.env_prefix}HANDSHAKE_TIMEOUT": ("client", "handshake_timeout"),
            f"{self.env_prefix}STRICT_HANDSHAKE": ("client", "strict_handshake"),
            f"{self.env_prefix}VERIFY_SSL": ("client", "verify_ssl"),
            f"{self.env_prefix}SUBPROTOCOL": ("client", "subprotocol"),
            f"{self.env_prefix}LOG_LEVEL": ("logging", "level"),
            f"{self.env_prefix}LOG_FORMAT": ("logging", "format"),
            f"{self.env_prefix}LOG_STRUCTURED": ("logging", "enable_structured"),
        }

        for env_var, config_path in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                current = config
                for key in config_path[:-1]:
                    current = current.setdefault(key, {})
                current[config_path[-1]] = value

        # TYPED_GRAPHQL_HEADER_X_API_KEY=abc -> {"X-Api-Key": "abc"}
        header_prefix = f"{self.env_prefix}HEADER_"
        for env_var, value in os.environ.items():
            if env_var.startswith(header_prefix) and len(env_var) > len(header_prefix):
                name = "-".join(
                    part.capitalize() for part in env_var[len(header_prefix):].split("_")
                )
                config.setdefault("client", {}).setdefault("headers", {})[name] = value

        return config

    def _deep_merge(
        self, base: Dict[str, Any], override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def load_config(
    config_file: Optional[Union[str, Path]] = None, env_prefix: str = "TYPED_GRAPHQL_"
) -> GlobalConfig:
    """Load configuration with a default ConfigLoader."""
    return ConfigLoader(env_prefix=env_prefix).load_config(config_file)
