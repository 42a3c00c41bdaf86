"""
Application Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Invalid config is rejected when settings are loaded.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from inapppay.models.domain import Environment


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


RESTORE_MODES = ("last", "each")


class Settings(BaseSettings):
    """Orchestrator settings loaded from INAPPPAY_* environment variables."""

    # Receipt verification endpoints
    sandbox_url: str = "https://sandbox.itunes.apple.com/verifyReceipt"
    production_url: str = "https://buy.itunes.apple.com/verifyReceipt"
    verification_timeout: float = 30.0
    max_verification_attempts: int = 3  # Caps 21007/21008 redirects per transaction

    # Environment used for transactions that arrive without an active session
    default_environment: Environment = Environment.PRODUCTION

    # "last" verifies only the most recently restored transaction,
    # "each" verifies and finalizes every restored transaction
    restore_mode: str = "last"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability
    metrics_enabled: bool = True
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True
    service_name: str = "inapppay"
    version: str = "0.1.0"

    model_config = SettingsConfigDict(
        env_prefix="INAPPPAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate configuration as soon as it is loaded.

        A misconfigured endpoint would otherwise only surface as a
        verification failure on a real purchase.
        """
        errors: list[str] = []

        for name in ("sandbox_url", "production_url"):
            url = getattr(self, name)
            if not url.startswith(("https://", "http://")):
                errors.append(f"{name.upper()} must be an http(s) URL, got: {url[:40]!r}")

        if self.max_verification_attempts < 1:
            errors.append(
                "MAX_VERIFICATION_ATTEMPTS must be at least 1, "
                f"got {self.max_verification_attempts}"
            )
        if self.verification_timeout <= 0:
            errors.append(f"VERIFICATION_TIMEOUT must be positive, got {self.verification_timeout}")
        if self.restore_mode not in RESTORE_MODES:
            errors.append(f"RESTORE_MODE must be one of {RESTORE_MODES}, got {self.restore_mode!r}")
        if self.log_format not in ("json", "console"):
            errors.append(f"LOG_FORMAT must be 'json' or 'console', got {self.log_format!r}")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "INAPPPAY CONFIGURATION ERROR",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self

    def url_for(self, environment: Environment) -> str:
        """Get the verification endpoint for an environment."""
        if environment is Environment.SANDBOX:
            return self.sandbox_url
        return self.production_url


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get application settings instance."""
    return settings
