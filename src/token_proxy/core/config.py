"""Configuration management for the token proxy."""

from functools import lru_cache
from typing import Optional
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from token_proxy.auth.exceptions import ConfigurationError
from token_proxy.auth.models import RESERVED_FORM_FIELDS, AuthMode, ServerConfig


class Settings(BaseSettings):
    """Application settings loaded from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Proxy targets
    UPSTREAM: str = Field(..., description="Upstream base URL requests are forwarded to")
    TOKEN_URL: str = Field(..., description="OAuth2 token endpoint URL")

    # Service identity
    CLIENT_ID: str = Field(default="", description="OAuth2 client ID")
    CLIENT_SECRET: str = Field(default="", description="OAuth2 client secret")
    SCOPE: str = Field(default="", description="Comma-separated scopes")

    # Mutual TLS to the token endpoint
    CERT_PATH: Optional[str] = Field(default=None, description="Client certificate (PEM)")
    KEY_PATH: Optional[str] = Field(default=None, description="Client certificate key (PEM)")
    CACERT_PATH: Optional[str] = Field(default=None, description="CA bundle for the token endpoint (PEM)")

    # Token exchange
    TOKEN_EXCHANGE_AUTH_MODE: str = Field(
        default=AuthMode.CLIENT_CREDENTIALS.value,
        description="CLIENT_CREDENTIALS or ACTOR_TOKEN"
    )
    TOKEN_EXCHANGE_SUBJECT_FIELD: str = Field(default="subject", description="Subject parameter and header suffix")

    # Server configuration
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8080, description="Server port")
    METRICS_PORT: Optional[int] = Field(default=None, description="Prometheus metrics port (disabled if unset)")

    # Timeouts
    TOKEN_TIMEOUT: float = Field(default=10.0, gt=0, description="Token endpoint timeout in seconds")
    UPSTREAM_TIMEOUT: float = Field(default=60.0, gt=0, description="Upstream timeout in seconds")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Logging format: json or text")

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format"""
        valid_formats = ['json', 'text']
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}")
        return v.lower()

    @property
    def scopes(self) -> tuple[str, ...]:
        """
        Scopes split from the comma-separated SCOPE setting.

        An empty SCOPE yields a single empty scope, which is sent to the
        token endpoint as an empty ``scope`` parameter.
        """
        return tuple(self.SCOPE.split(","))

    def get_auth_mode(self) -> AuthMode:
        try:
            return AuthMode(self.TOKEN_EXCHANGE_AUTH_MODE)
        except ValueError:
            valid_modes = [mode.value for mode in AuthMode]
            raise ConfigurationError(
                f"TOKEN_EXCHANGE_AUTH_MODE must be one of {valid_modes}, "
                f"got {self.TOKEN_EXCHANGE_AUTH_MODE!r}",
                "TOKEN_EXCHANGE_AUTH_MODE"
            ) from None

    def get_server_config(self) -> ServerConfig:
        """
        Create the immutable ServerConfig from settings.

        Raises:
            ConfigurationError: If a URL, the auth mode or the subject field is invalid
        """
        _validate_http_url(self.UPSTREAM, "UPSTREAM")
        _validate_http_url(self.TOKEN_URL, "TOKEN_URL")

        if not self.TOKEN_EXCHANGE_SUBJECT_FIELD:
            raise ConfigurationError(
                "TOKEN_EXCHANGE_SUBJECT_FIELD must not be empty",
                "TOKEN_EXCHANGE_SUBJECT_FIELD"
            )
        if self.TOKEN_EXCHANGE_SUBJECT_FIELD in RESERVED_FORM_FIELDS:
            raise ConfigurationError(
                f"TOKEN_EXCHANGE_SUBJECT_FIELD cannot overwrite the {self.TOKEN_EXCHANGE_SUBJECT_FIELD!r} parameter",
                "TOKEN_EXCHANGE_SUBJECT_FIELD"
            )

        return ServerConfig(
            upstream=self.UPSTREAM,
            token_url=self.TOKEN_URL,
            client_id=self.CLIENT_ID,
            client_secret=self.CLIENT_SECRET,
            scopes=self.scopes,
            auth_mode=self.get_auth_mode(),
            subject_field=self.TOKEN_EXCHANGE_SUBJECT_FIELD
        )


def _validate_http_url(value: str, setting: str) -> None:
    try:
        parts = urlsplit(value)
        valid = parts.scheme in ("http", "https") and bool(parts.hostname)
    except ValueError:
        valid = False

    if not valid:
        raise ConfigurationError(f"{setting} must be an absolute http(s) URL, got {value!r}", setting)


@lru_cache
def get_settings() -> Settings:
    """Get application settings (for dependency injection)"""
    return Settings()
