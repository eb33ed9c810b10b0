"""Pydantic schema for configuration validation.

All config values are validated at startup. Typos and invalid values
fail fast with clear error messages.

Usage:
    from booking_pulse.config_schema import load_validated_config, AppConfig
    config = load_validated_config("config/config.yaml")
    # config is now a validated AppConfig instance
"""

from __future__ import annotations

from datetime import time
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# BASE MODEL WITH STRICT VALIDATION
# =============================================================================

class StrictModel(BaseModel):
    """Base model that rejects unknown fields (catches typos)."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# SERVER MODEL
# =============================================================================

class ServerConfig(StrictModel):
    """HTTP server configuration."""

    host: str = Field(
        default="0.0.0.0",
        description="Host to bind (0.0.0.0 for all interfaces)"
    )
    port: int = Field(
        default=3000,
        gt=0,
        description="Port number"
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins"
    )
    websocket_path: str = Field(
        default="/ws",
        description="WebSocket endpoint path for the push stream"
    )
    keepalive_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Idle seconds before the server sends a keepalive ping"
    )


# =============================================================================
# AIRPORT DIRECTORY MODEL
# =============================================================================

class AirportsConfig(StrictModel):
    """Airport directory source."""

    data_file: str = Field(
        default="config/airports.json",
        description="JSON file with airport records (list or code-keyed mapping)"
    )


# =============================================================================
# INGESTION MODEL
# =============================================================================

class IngestionConfig(StrictModel):
    """Validation rules for inbound booking events."""

    confirmed_status: str = Field(
        default="confirmed",
        min_length=1,
        description="Only bookings with exactly this status are counted"
    )
    timezone: str = Field(
        default="UTC",
        description="IANA zone used for day-granularity date comparisons"
    )
    accept_window_days: int = Field(
        default=2,
        ge=1,
        description="Trailing days accepted, including today (1 = today only, 2 = yesterday and today)"
    )

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v: str) -> str:
        """Fail at load time on an unknown zone name."""
        if v.upper() == "UTC":
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v


# =============================================================================
# AGGREGATION MODEL
# =============================================================================

class AggregationConfig(StrictModel):
    """Daily aggregate settings."""

    top_n: int = Field(
        default=10,
        gt=0,
        description="Number of entries in top airports / top countries views"
    )
    reset_time: time = Field(
        default=time(0, 0),
        description="Local wall-clock time (HH:MM) of the daily reset"
    )
    reset_enabled: bool = Field(
        default=True,
        description="Run the daily reset scheduler with the server"
    )


# =============================================================================
# BROADCAST MODEL
# =============================================================================

class BroadcastConfig(StrictModel):
    """Poll store and push registry limits."""

    recent_limit: int = Field(
        default=100,
        gt=0,
        description="Accepted bookings retained in the poll store"
    )
    subscriber_queue_size: int = Field(
        default=256,
        gt=0,
        description="Pending messages per push subscriber before it is dropped"
    )


# =============================================================================
# PLAYBACK MODEL
# =============================================================================

class PlaybackConfig(StrictModel):
    """Client-side animation queue timings."""

    focus_zoom: float = Field(
        default=8.0,
        gt=0,
        description="Zoom level used when flying to a booking"
    )
    hold_seconds: float = Field(
        default=4.0,
        ge=0,
        description="How long the highlighted marker stays visible"
    )
    ready_timeout_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Upper bound on waiting for the view to finish loading"
    )
    prefetch_ahead: int = Field(
        default=3,
        ge=0,
        le=3,
        description="Queued entries to prefetch tiles for while one plays"
    )
    prefetch_dedup_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Window in which the same coordinate key is not prefetched twice"
    )
    processed_id_ceiling: int = Field(
        default=1000,
        gt=0,
        description="Seen-id window size that triggers eviction"
    )
    processed_id_keep: int = Field(
        default=500,
        gt=0,
        description="Most recent ids kept after eviction"
    )

    @model_validator(mode="after")
    def keep_below_ceiling(self) -> PlaybackConfig:
        """The trailing subset must be smaller than the ceiling."""
        if self.processed_id_keep > self.processed_id_ceiling:
            raise ValueError(
                f"processed_id_keep ({self.processed_id_keep}) must be <= "
                f"processed_id_ceiling ({self.processed_id_ceiling})"
            )
        return self


# =============================================================================
# POLLER MODEL
# =============================================================================

class PollerConfig(StrictModel):
    """Client-side polling of the recent-bookings API."""

    base_url: str = Field(
        default="http://localhost:3000",
        description="Server the watcher polls"
    )
    interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between poll requests"
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout per poll request"
    )


# =============================================================================
# LOGGING MODEL
# =============================================================================

class LoggingConfig(StrictModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Root log level"
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="logging.Formatter format string"
    )

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        """Normalize and check the level name."""
        level = v.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


# =============================================================================
# ROOT CONFIG
# =============================================================================

class AppConfig(StrictModel):
    """Root configuration model for the entire application.

    All fields have sensible defaults, so an empty config file is valid.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    airports: AirportsConfig = Field(default_factory=AirportsConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    broadcast: BroadcastConfig = Field(default_factory=BroadcastConfig)
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    poller: PollerConfig = Field(default_factory=PollerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# LOADING FUNCTIONS
# =============================================================================

def load_validated_config(config_path: str | Path = "config/config.yaml") -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to config YAML file.

    Returns:
        Validated AppConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If config is invalid (with detailed error message).
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    return AppConfig.model_validate(raw_config)


def validate_config_dict(config_dict: dict[str, Any]) -> AppConfig:
    """Validate a configuration dictionary.

    Args:
        config_dict: Configuration as a dictionary.

    Returns:
        Validated AppConfig instance.

    Raises:
        pydantic.ValidationError: If config is invalid.
    """
    return AppConfig.model_validate(config_dict)


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    # Root config
    "AppConfig",
    # Sub-configs
    "ServerConfig",
    "AirportsConfig",
    "IngestionConfig",
    "AggregationConfig",
    "BroadcastConfig",
    "PlaybackConfig",
    "PollerConfig",
    "LoggingConfig",
    # Functions
    "load_validated_config",
    "validate_config_dict",
]
