"""
Tests for Settings validation.
"""

import pytest

from inapppay.config import ConfigurationError, Settings, get_settings
from inapppay.models.domain import Environment


class TestSettings:
    """Defaults and fail-fast validation."""

    def test_defaults(self):
        config = Settings()

        assert config.sandbox_url == "https://sandbox.itunes.apple.com/verifyReceipt"
        assert config.production_url == "https://buy.itunes.apple.com/verifyReceipt"
        assert config.max_verification_attempts == 3
        assert config.restore_mode == "last"
        assert config.default_environment is Environment.PRODUCTION

    def test_url_for(self):
        config = Settings()

        assert config.url_for(Environment.SANDBOX) == config.sandbox_url
        assert config.url_for(Environment.PRODUCTION) == config.production_url

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("INAPPPAY_MAX_VERIFICATION_ATTEMPTS", "5")
        monkeypatch.setenv("INAPPPAY_RESTORE_MODE", "each")

        config = Settings()

        assert config.max_verification_attempts == 5
        assert config.restore_mode == "each"

    def test_invalid_url(self):
        with pytest.raises(ConfigurationError, match="SANDBOX_URL"):
            Settings(sandbox_url="sandbox.itunes.apple.com")

    def test_zero_attempts(self):
        with pytest.raises(ConfigurationError, match="MAX_VERIFICATION_ATTEMPTS"):
            Settings(max_verification_attempts=0)

    def test_unknown_restore_mode(self):
        with pytest.raises(ConfigurationError, match="RESTORE_MODE"):
            Settings(restore_mode="first")

    def test_get_settings_returns_global(self):
        assert get_settings() is get_settings()
