"""Tests for Pydantic config schema validation."""

from datetime import time
from pathlib import Path

import pytest
from pydantic import ValidationError

from booking_pulse.config_schema import (
    AppConfig,
    PlaybackConfig,
    load_validated_config,
    validate_config_dict,
)

CONFIG_FILE = Path(__file__).parent.parent / "config" / "config.yaml"


class TestValidConfig:
    """Test that valid configs are accepted."""

    def test_empty_config_uses_defaults(self) -> None:
        """Empty config should use all defaults."""
        config = validate_config_dict({})
        assert config.server.port == 3000
        assert config.ingestion.confirmed_status == "confirmed"
        assert config.ingestion.accept_window_days == 2
        assert config.aggregation.top_n == 10
        assert config.broadcast.recent_limit == 100

    def test_partial_config_merges_defaults(self) -> None:
        """Partial config should merge with defaults."""
        config = validate_config_dict({"server": {"port": 8080}})
        assert config.server.port == 8080
        assert config.server.websocket_path == "/ws"  # Default

    def test_reset_time_parsed_from_string(self) -> None:
        config = validate_config_dict({"aggregation": {"reset_time": "03:30"}})
        assert config.aggregation.reset_time == time(3, 30)

    def test_iana_timezone_accepted(self) -> None:
        config = validate_config_dict({"ingestion": {"timezone": "Europe/London"}})
        assert config.ingestion.timezone == "Europe/London"

    def test_log_level_normalized(self) -> None:
        config = validate_config_dict({"logging": {"level": "debug"}})
        assert config.logging.level == "DEBUG"


class TestInvalidConfig:
    """Test that invalid configs are rejected with clear errors."""

    def test_typo_in_key_rejected(self) -> None:
        """Typos in config keys should be rejected (extra='forbid')."""
        with pytest.raises(ValidationError) as exc_info:
            validate_config_dict({"sever": {"port": 3000}})
        assert "sever" in str(exc_info.value)

    def test_typo_in_nested_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_config_dict({"playback": {"hold_secs": 2}})

    def test_wrong_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_config_dict({"server": {"port": "not-a-port"}})

    def test_zero_window_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_config_dict({"ingestion": {"accept_window_days": 0}})

    def test_unknown_timezone_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_config_dict({"ingestion": {"timezone": "Mars/Olympus_Mons"}})
        assert "Unknown timezone" in str(exc_info.value)

    def test_unknown_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_config_dict({"logging": {"level": "CHATTY"}})

    def test_prefetch_ahead_capped_at_three(self) -> None:
        with pytest.raises(ValidationError):
            validate_config_dict({"playback": {"prefetch_ahead": 4}})

    def test_keep_above_ceiling_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PlaybackConfig(processed_id_ceiling=10, processed_id_keep=20)


class TestConfigFileLoading:
    """Test loading config from files."""

    def test_load_real_config_file(self) -> None:
        """The shipped config file should load and match the defaults."""
        config = load_validated_config(CONFIG_FILE)
        assert isinstance(config, AppConfig)
        assert config.aggregation.reset_time == time(0, 0)
        assert config.playback.prefetch_ahead == 3

    def test_missing_file_raises_error(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_validated_config(tmp_path / "nope.yaml")

    def test_empty_file_is_valid(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = load_validated_config(path)
        assert config.server.port == 3000
