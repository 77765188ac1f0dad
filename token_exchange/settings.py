"""
Configuration settings for token-exchange-py.

This module defines the configuration schema using Pydantic settings,
supporting environment variables, .env files, and direct configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .version import __version__


class Settings(BaseSettings):
    """
    Configuration settings for token exchanges.

    Environment Variable Mapping:
        All settings can be configured via environment variables by prefixing
        with 'TOKEN_EXCHANGE_' (e.g., TOKEN_EXCHANGE_HTTP_TIMEOUT_SECONDS).

    Example:
        >>> settings = Settings(http_timeout_seconds=10, log_pii=False)
        >>> settings.validate_configuration()
    """

    # Transport
    http_timeout_seconds: float = Field(
        default=30.0, description="Timeout handed to the HTTP transport"
    )
    verify_ssl: bool = Field(
        default=True, description="Verify TLS certificates of the token endpoint"
    )

    # Client identification headers
    client_sku: str = Field(
        default="token-exchange-py", description="Value of the x-client-SKU header"
    )
    client_version: str = Field(
        default=__version__, description="Value of the x-client-VER header"
    )
    return_correlation_id: bool = Field(
        default=True,
        description="Ask the server to echo client-request-id back",
    )

    # Diagnostics
    log_pii: bool = False
    """Include exception details (which may contain user data) in log messages."""

    telemetry_enabled: bool = True
    """Dispatch finalized diagnostic records to registered sinks."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TOKEN_EXCHANGE_",
        case_sensitive=False,
        extra="forbid",
    )

    def validate_configuration(self) -> None:
        """
        Validate the current configuration for common issues.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        if self.http_timeout_seconds <= 0:
            raise ConfigurationError(
                f"http_timeout_seconds must be positive, got {self.http_timeout_seconds}"
            )

        if not self.client_sku.strip():
            raise ConfigurationError("client_sku cannot be empty")
