"""Unit tests for configuration management."""

from pathlib import Path

import pytest
import yaml

from live_rotator.models.config import ConfigManager, RotatorConfig


def test_rotator_config_defaults():
    """Test that RotatorConfig has correct default values."""
    config = RotatorConfig()

    assert config.base_url == "https://livekenceng.com"
    assert config.member_email is None
    assert config.account_id is None

    # Loop timing and failure policy
    assert config.delay_seconds == 60.0
    assert config.escalation_threshold == 3
    assert config.validation_status_codes == [400, 422]
    assert config.auth_mismatch_status_codes == [401]
    assert config.auth_mismatch_marker == "machine"

    # Timeouts
    assert config.connect_timeout == 5.0
    assert config.read_timeout == 30.0

    # Output
    assert config.report_directory == "out"
    assert config.report_filename == "run_report.json"


def test_rotator_config_validators():
    """Test RotatorConfig field validators."""
    with pytest.raises(ValueError, match="delay_seconds must be positive"):
        RotatorConfig(delay_seconds=0)

    with pytest.raises(ValueError, match="escalation_threshold must be at least 1"):
        RotatorConfig(escalation_threshold=0)

    with pytest.raises(ValueError, match="must start with http"):
        RotatorConfig(base_url="ftp://invalid.com")


def test_base_url_trailing_slash_is_stripped():
    assert RotatorConfig(base_url="http://localhost:8000/").base_url == "http://localhost:8000"


def test_report_path():
    config = RotatorConfig(report_directory="reports", report_filename="run.json")
    assert config.report_path == Path("reports/run.json")


def test_from_env(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv("LIVEROTATOR_EMAIL", "env@example.com")
    monkeypatch.setenv("LIVEROTATOR_ACCOUNT_ID", "42")
    monkeypatch.setenv("LIVEROTATOR_DELAY", "15.5")
    monkeypatch.setenv("LIVEROTATOR_ESCALATION_THRESHOLD", "5")

    config = RotatorConfig.from_env()

    assert config.member_email == "env@example.com"
    assert config.account_id == 42
    assert config.delay_seconds == 15.5
    assert config.escalation_threshold == 5


class TestConfigManager:

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("LIVEROTATOR_DELAY", "LIVEROTATOR_ACCOUNT_ID", "LIVEROTATOR_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            "account_id": 7,
            "niche_id": 3,
            "delay_seconds": 90,
            "log_level": "WARNING",
        }))
        return path

    def test_missing_file_uses_defaults(self, tmp_path):
        config = ConfigManager(tmp_path / "missing.yaml").load_config()
        assert config.delay_seconds == 60.0

    def test_yaml_values_load(self, config_file):
        config = ConfigManager(config_file).load_config()
        assert config.account_id == 7
        assert config.niche_id == 3
        assert config.delay_seconds == 90

    def test_env_overrides_yaml(self, config_file, monkeypatch):
        monkeypatch.setenv("LIVEROTATOR_DELAY", "30")
        config = ConfigManager(config_file).load_config()
        assert config.delay_seconds == 30
        assert config.account_id == 7

    def test_cli_overrides_env(self, config_file, monkeypatch):
        monkeypatch.setenv("LIVEROTATOR_DELAY", "30")
        config = ConfigManager(config_file).load_config({"delay_seconds": 5.0})
        assert config.delay_seconds == 5.0

    def test_none_cli_values_are_ignored(self, config_file):
        config = ConfigManager(config_file).load_config({"account_id": None, "niche_id": 9})
        assert config.account_id == 7
        assert config.niche_id == 9

    def test_invalid_override_fails_validation(self, config_file):
        with pytest.raises(ValueError):
            ConfigManager(config_file).load_config({"delay_seconds": -1})

    def test_config_property_loads_lazily(self, config_file):
        manager = ConfigManager(config_file)
        assert manager.config.account_id == 7
