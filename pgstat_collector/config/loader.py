"""Configuration loader with YAML parsing and environment variable substitution."""

import yaml
import os
import re
from pathlib import Path
from typing import Any

from .models import CollectorSystemConfig
from ..stats.errors import ConfigurationError

_ENV_PATTERN = re.compile(r'\$\{(\w+)\}')
_SECTIONS = ("postgresql", "collection", "output")


class ConfigLoader:
    """Load and validate collector configuration."""

    @staticmethod
    def load_from_file(config_path: str) -> CollectorSystemConfig:
        """
        Load collector configuration from a YAML file.

        An empty file yields the defaults. ${ENV_VAR} placeholders in string
        values are replaced before validation; unset variables become "".

        Args:
            config_path: Path to YAML configuration file

        Returns:
            CollectorSystemConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            ConfigurationError: If the document or a section is not a mapping
            pydantic.ValidationError: If configuration validation fails
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f)

        return ConfigLoader.load_from_dict(raw_config, source=str(config_file))

    @staticmethod
    def load_from_dict(raw_config: Any, source: str = "<dict>") -> CollectorSystemConfig:
        """
        Validate an already parsed configuration document.

        Args:
            raw_config: Parsed YAML document (None is treated as empty)
            source: Where the document came from, for error messages
        """
        if raw_config is None:
            raw_config = {}
        if not isinstance(raw_config, dict):
            raise ConfigurationError(
                f"{source}: top level must be a mapping of sections, "
                f"got {type(raw_config).__name__}"
            )

        for section in _SECTIONS:
            value = raw_config.get(section)
            if value is not None and not isinstance(value, dict):
                raise ConfigurationError(
                    f"{source}: section '{section}' must be a mapping, got {type(value).__name__}"
                )

        raw_config = ConfigLoader._substitute_env_vars(raw_config)
        # An empty section ("postgresql:" with nothing under it) means defaults
        raw_config = {k: v for k, v in raw_config.items() if v is not None}
        return CollectorSystemConfig(**raw_config)

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """Recursively substitute ${ENV_VAR} placeholders in strings."""
        if isinstance(obj, str):
            return _ENV_PATTERN.sub(lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
