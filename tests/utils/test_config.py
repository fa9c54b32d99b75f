"""Tests for configuration and logging setup."""

import pytest
import structlog

from segmentplacement.utils.config import Config, get_config, reset_config
from segmentplacement.utils.logging import configure_from_config, get_logger


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove environment overrides."""
    for name in ("LOG_LEVEL", "LOG_FORMAT", "REBALANCE_BOOTSTRAP"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class TestConfig:
    """Test Config."""

    def test_defaults(self):
        """Test bundled defaults are loaded."""
        config = Config()

        assert config.get("rebalance.bootstrap") is False
        assert config.get("logging.level") == "INFO"

    def test_file_overrides_defaults(self, tmp_path):
        """Test a config file is deep-merged over defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("logging:\n  level: DEBUG\n")

        config = Config(str(config_file))

        assert config.get("logging.level") == "DEBUG"
        assert config.get("logging.format") == "json"

    def test_empty_file(self, tmp_path):
        """Test an empty config file is accepted."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert Config(str(config_file)).get("rebalance.bootstrap") is False

    def test_env_overrides(self, monkeypatch):
        """Test environment variables win."""
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.setenv("REBALANCE_BOOTSTRAP", "true")

        config = Config()

        assert config.get("logging.level") == "WARNING"
        assert config.get("rebalance.bootstrap") is True

    def test_get_set(self):
        """Test dot-notation access."""
        config = Config()

        config.set("rebalance.extra.value", 3)

        assert config.get("rebalance.extra.value") == 3
        assert config.get("missing.key", "fallback") == "fallback"

    @pytest.mark.parametrize("value,expected", [("true", True), ("No", False), (1, True), (0, False)])
    def test_get_bool(self, value, expected):
        """Test boolean coercion."""
        config = Config()
        config.set("rebalance.bootstrap", value)

        assert config.get_bool("rebalance.bootstrap") is expected

    def test_global_config(self):
        """Test global instance is reused until reset."""
        first = get_config()

        assert get_config() is first

        reset_config()
        assert get_config() is not first


class TestLogging:
    """Test logging configuration."""

    def test_configure_from_config(self):
        """Test loggers work after configuration."""
        config = Config()
        config.set("logging.format", "console")

        try:
            configure_from_config(config)
            get_logger(__name__).info("Configured", table="events_OFFLINE")
        finally:
            structlog.reset_defaults()
