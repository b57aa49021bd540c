"""
Tests for configuration system
"""

import pytest
from exception_helper.config import (
    ExceptionHelperConfig, LoggingConfig,
    get_config, reload_config, set_config
)


class TestLoggingConfig:
    """Test logging configuration"""

    def test_default_values(self):
        """Test default logging configuration values"""
        config = LoggingConfig()

        assert config.level == "INFO"
        assert config.structured is False

    def test_from_env(self, monkeypatch):
        """Test loading logging config from environment variables"""
        monkeypatch.setenv("EXCEPTION_HELPER_LOG_LEVEL", "debug")
        monkeypatch.setenv("EXCEPTION_HELPER_LOG_FORMAT", "JSON")

        config = LoggingConfig.from_env()

        assert config.level == "DEBUG"
        assert config.structured is True


class TestExceptionHelperConfig:
    """Test main configuration"""

    def test_sleeps_enabled_by_default(self, monkeypatch):
        """Test retry sleeps are enabled unless overridden"""
        monkeypatch.delenv("EXCEPTION_HELPER_DISABLE_RETRY_SLEEP", raising=False)

        assert ExceptionHelperConfig().disable_retry_sleep is False
        assert ExceptionHelperConfig.load().disable_retry_sleep is False

    @pytest.mark.parametrize("value", ["1", "true", "TRUE", "yes", "on"])
    def test_disable_retry_sleep_truthy_values(self, monkeypatch, value):
        """Test values that disable retry sleeps"""
        monkeypatch.setenv("EXCEPTION_HELPER_DISABLE_RETRY_SLEEP", value)

        assert ExceptionHelperConfig.load().disable_retry_sleep is True

    @pytest.mark.parametrize("value", ["0", "false", "", "no"])
    def test_disable_retry_sleep_falsy_values(self, monkeypatch, value):
        """Test values that leave retry sleeps enabled"""
        monkeypatch.setenv("EXCEPTION_HELPER_DISABLE_RETRY_SLEEP", value)

        assert ExceptionHelperConfig.load().disable_retry_sleep is False

    def test_validate_valid_config(self):
        """Test validation of the default configuration"""
        assert ExceptionHelperConfig().validate() == []

    def test_validate_unknown_log_level(self):
        """Test validation reports an unknown log level"""
        config = ExceptionHelperConfig(logging=LoggingConfig(level="LOUD"))

        errors = config.validate()

        assert len(errors) == 1
        assert "LOUD" in errors[0]


class TestGlobalConfig:
    """Test global configuration access"""

    def test_get_config_is_cached(self):
        """Test the global configuration is created once"""
        assert get_config() is get_config()

    def test_reload_config_reads_environment(self, monkeypatch):
        """Test reloading picks up environment changes"""
        first = get_config()
        monkeypatch.setenv("EXCEPTION_HELPER_DISABLE_RETRY_SLEEP", "true")

        reloaded = reload_config()

        assert reloaded is not first
        assert reloaded.disable_retry_sleep is True

    def test_set_config(self):
        """Test installing an explicit configuration"""
        config = ExceptionHelperConfig(disable_retry_sleep=True)

        set_config(config)

        assert get_config() is config

    def test_invalid_config_warns(self, monkeypatch):
        """Test configuration errors are reported as warnings"""
        monkeypatch.setenv("EXCEPTION_HELPER_LOG_LEVEL", "LOUD")

        with pytest.warns(UserWarning, match="Unknown log level"):
            reload_config()
