"""Configuration loader for Booking Pulse

All configurable values come from config/config.yaml.
No magic numbers in code - everything is configurable.

Configuration is validated at load time using Pydantic.
Typos and invalid values fail fast with clear error messages.

Usage:
    from booking_pulse.config import load_config, get, get_validated_config

    # Load and validate (call once at startup)
    load_config("config/config.yaml")

    # Get values by dot-path
    window = get("ingestion.accept_window_days")

    # Or use the typed config object (preferred)
    config = get_validated_config()
    window = config.ingestion.accept_window_days
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from .config_schema import AppConfig, load_validated_config, validate_config_dict


# Global config instances
_config: dict[str, Any] | None = None
_validated_config: AppConfig | None = None

# Default config path, overridable from the environment
CONFIG_ENV_VAR = "BOOKING_PULSE_CONFIG"
DEFAULT_CONFIG_PATH: Path = Path(__file__).parent.parent / "config" / "config.yaml"


def _default_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override) if override else DEFAULT_CONFIG_PATH


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load and validate configuration from YAML file.

    Validates the config against the Pydantic schema. Invalid configs
    raise a ValidationError with details about what's wrong.

    Args:
        config_path: Path to config file. Defaults to $BOOKING_PULSE_CONFIG,
            then config/config.yaml.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If config is invalid.
    """
    global _config, _validated_config

    path: Path = Path(config_path) if config_path else _default_path()

    _validated_config = load_validated_config(path)

    with open(path) as f:
        loaded: Any = yaml.safe_load(f)
        if not isinstance(loaded, dict):
            loaded = {}
        _config = loaded

    return _config


def use_config(config_dict: dict[str, Any]) -> AppConfig:
    """Install an in-memory configuration (validated) instead of a file."""
    global _config, _validated_config

    _validated_config = validate_config_dict(config_dict)
    _config = dict(config_dict)
    return _validated_config


def reset_config() -> None:
    """Forget the loaded configuration so the next access reloads it."""
    global _config, _validated_config
    _config = None
    _validated_config = None


def get_config() -> dict[str, Any]:
    """Get the loaded configuration dict. Loads default if not already loaded.

    For typed access, use get_validated_config() instead.
    """
    global _config
    if _config is None:
        load_config()
    if _config is None:
        raise RuntimeError("Config failed to load. Call load_config() first.")
    return _config


def get_validated_config() -> AppConfig:
    """Get the validated configuration object.

    Returns a typed AppConfig instance with IDE autocompletion support.
    Loads default config if not already loaded.
    """
    global _validated_config
    if _validated_config is None:
        load_config()
    if _validated_config is None:
        raise RuntimeError("Validated config failed to load. Call load_config() first.")
    return _validated_config


def get(key: str, default: Any = None) -> Any:
    """Get a config value by dot-separated key path.

    Values come from the validated config, so defaults for keys absent
    from the YAML file are returned too.

    Examples:
        get("ingestion.timezone")
        get("playback.hold_seconds")
    """
    value: Any = get_validated_config().model_dump()
    for k in key.split("."):
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default

    return value


def set_config_value(key: str, value: Any) -> None:
    """Set a config value by dot-separated key path.

    Used for runtime overrides (e.g., CLI args). The whole config is
    re-validated, so an invalid override raises and leaves the previous
    config in place.

    Args:
        key: Dot-separated key path (e.g., "server.port")
        value: Value to set
    """
    global _config, _validated_config

    if _config is None:
        load_config()

    if _config is None:
        raise RuntimeError("Config failed to load. Call load_config() first.")

    updated: dict[str, Any] = _deep_copy(_config)
    keys = key.split(".")
    target = updated

    # Navigate to parent
    for k in keys[:-1]:
        if not isinstance(target.get(k), dict):
            target[k] = {}
        target = target[k]

    target[keys[-1]] = value

    _validated_config = validate_config_dict(updated)
    _config = updated


def _deep_copy(data: dict[str, Any]) -> dict[str, Any]:
    return {
        k: _deep_copy(v) if isinstance(v, dict) else v
        for k, v in data.items()
    }
