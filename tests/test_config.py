"""Tests for the global config accessors."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from booking_pulse import config as config_module
from booking_pulse.config import (
    CONFIG_ENV_VAR,
    get,
    get_validated_config,
    load_config,
    set_config_value,
    use_config,
)


class TestLoadConfig:
    def test_load_explicit_path(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("server:\n  port: 4000\n")
        load_config(path)
        assert get_validated_config().server.port == 4000

    def test_env_var_selects_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "other.yaml"
        path.write_text("poller:\n  interval_seconds: 1.5\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        load_config()
        assert get_validated_config().poller.interval_seconds == 1.5

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_default_path_points_at_repo_config(self) -> None:
        assert config_module.DEFAULT_CONFIG_PATH.name == "config.yaml"
        assert config_module.DEFAULT_CONFIG_PATH.exists()


class TestDotPathAccess:
    def test_get_returns_defaults_for_absent_keys(self) -> None:
        use_config({})
        assert get("ingestion.timezone") == "UTC"
        assert get("playback.hold_seconds") == 4.0

    def test_get_missing_key_returns_default(self) -> None:
        use_config({})
        assert get("ingestion.nope", "fallback") == "fallback"

    def test_set_config_value_revalidates(self) -> None:
        use_config({})
        set_config_value("server.port", 9000)
        assert get_validated_config().server.port == 9000

    def test_invalid_override_keeps_previous_config(self) -> None:
        use_config({"server": {"port": 5000}})
        with pytest.raises(ValidationError):
            set_config_value("server.port", -1)
        assert get_validated_config().server.port == 5000
