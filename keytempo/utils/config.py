"""
Configuration management for keytempo.

Loads and validates configuration from YAML files with environment
variable interpolation support.
"""

import copy
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from keytempo.utils.errors import ConfigurationError


class ConfigManager:
    """
    Manages configuration loaded from YAML files.

    Features:
    - YAML configuration loading
    - Environment variable interpolation (${VAR_NAME})
    - Nested key access with dot notation
    - Defaults merged underneath the loaded values
    - Type validation
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = config_dict or {}
        self._env_pattern = re.compile(r'\$\{([^}]+)\}')

    @classmethod
    def from_file(cls, file_path: Path) -> "ConfigManager":
        """
        Create ConfigManager from YAML file.

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                config_key=str(file_path)
            )

        try:
            with open(file_path, 'r') as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse YAML configuration: {e}",
                config_key=str(file_path)
            ) from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping: {file_path}",
                config_key=str(file_path)
            )

        manager = cls(config_dict)
        manager._interpolate_env_vars()
        return manager

    def _interpolate_env_vars(self) -> None:
        """Replace ${ENV_VAR} patterns in every string value."""
        self._config = self._interpolate(self._config)

    def _interpolate(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._interpolate(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._interpolate(item) for item in value]
        if isinstance(value, str):
            return self._interpolate_string(value)
        return value

    def _interpolate_string(self, s: str) -> str:
        """Replace ${ENV_VAR} with environment variable value."""
        def replace(match: re.Match) -> str:
            value = os.environ.get(match.group(1))
            if value is None:
                return match.group(0)  # Keep original if not found
            return value

        return self._env_pattern.sub(replace, s)

    def get(
        self,
        key: str,
        default: Any = None,
        required: bool = False
    ) -> Any:
        """
        Get configuration value using dot notation.

        Example:
            config.get("decoder.backend", default="pyav")
            config.get("analysis.hop_length", required=True)

        Raises:
            ConfigurationError: If required key is not found
        """
        value: Any = self._config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                if required:
                    raise ConfigurationError(
                        f"Required configuration key not found: {key}",
                        config_key=key
                    )
                return default

        return value

    def get_section(self, key: str) -> Dict[str, Any]:
        """Get a configuration section as a dict (empty if missing)."""
        value = self.get(key, default={})
        if not isinstance(value, dict):
            return {}
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value using dot notation."""
        keys = key.split('.')
        current = self._config

        for k in keys[:-1]:
            if k not in current:
                current[k] = {}
            current = current[k]

        current[keys[-1]] = value

    def merge_defaults(self, defaults: Dict[str, Any]) -> None:
        """Fill in every key missing from the loaded config with its default."""
        self._config = _deep_merge(defaults, self._config)

    def to_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary."""
        return copy.deepcopy(self._config)

    def validate(self, schema: Dict[str, Any]) -> None:
        """
        Validate configuration against a schema.

        Schema format:
            {
                "decoder.backend": {"type": str, "required": True},
                "decoder.max_consecutive_skips": {"type": int},
                "analysis.start_bpm": {"type": (int, float)},
            }

        Raises:
            ConfigurationError: If validation fails
        """
        for key, rules in schema.items():
            value = self.get(key)
            expected_type = rules.get("type")

            if value is None:
                if rules.get("required", False):
                    raise ConfigurationError(
                        f"Required configuration missing: {key}",
                        config_key=key
                    )
                continue

            # bool is an int subclass; reject it for numeric settings
            if expected_type and (
                not isinstance(value, expected_type)
                or (isinstance(value, bool) and expected_type is not bool)
            ):
                raise ConfigurationError(
                    f"Invalid type for {key}: expected {_type_name(expected_type)}, "
                    f"got {type(value).__name__}",
                    config_key=key
                )

            choices = rules.get("choices")
            if choices and value not in choices:
                raise ConfigurationError(
                    f"Invalid value for {key}: {value!r} "
                    f"(expected one of {', '.join(map(str, choices))})",
                    config_key=key
                )


CONFIG_SCHEMA: Dict[str, Any] = {
    "decoder.backend": {"type": str, "required": True, "choices": ("pyav", "soundfile")},
    "decoder.max_consecutive_skips": {"type": int},
    "decoder.block_frames": {"type": int},
    "analysis.hop_length": {"type": int},
    "analysis.start_bpm": {"type": (int, float)},
    "analysis.tempo_range": {"type": (list, tuple)},
    "analysis.min_samples": {"type": int},
    "logging.level": {"type": str},
    "logging.format": {"type": str, "choices": ("json", "text")},
    "logging.file": {"type": str},
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file or return defaults.

    Args:
        config_path: Optional path to config file.
                    If None, tries "config/config.yaml" and "keytempo.yaml"

    Returns:
        Dict[str, Any]: Validated configuration with defaults filled in

    Raises:
        ConfigurationError: If the file is unreadable or fails validation
    """
    if config_path is None:
        for path in (Path("config/config.yaml"), Path("keytempo.yaml")):
            if path.exists():
                config_path = str(path)
                break

    if config_path:
        manager = ConfigManager.from_file(Path(config_path))
    else:
        manager = ConfigManager()

    manager.merge_defaults(get_default_config())
    manager.validate(CONFIG_SCHEMA)
    return manager.to_dict()


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "decoder": {
            "backend": "pyav",
            "max_consecutive_skips": 1000,
            "block_frames": 4096,
        },
        "analysis": {
            "hop_length": 512,
            "start_bpm": 120.0,
            "tempo_range": [60.0, 200.0],
            "min_samples": 2048,
        },
        "logging": {
            "level": "INFO",
            "format": "json",
        },
    }


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _type_name(expected_type: Any) -> str:
    if isinstance(expected_type, tuple):
        return " or ".join(t.__name__ for t in expected_type)
    return expected_type.__name__
