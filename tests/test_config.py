"""Test configuration and settings."""

import ssl
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from token_proxy.auth.exceptions import ConfigurationError
from token_proxy.auth.models import AuthMode
from token_proxy.core.config import Settings
from token_proxy.core.transport import build_ssl_context, create_token_client

from .conftest import TOKEN_URL, UPSTREAM


def make_settings(**overrides):
    values = {"UPSTREAM": UPSTREAM, "TOKEN_URL": TOKEN_URL}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    """Test configuration settings."""

    def test_default_settings(self):
        """Test that default settings are loaded correctly."""
        settings = make_settings()

        assert settings.HOST == "0.0.0.0"
        assert settings.PORT == 8080
        assert settings.METRICS_PORT is None
        assert settings.LOG_LEVEL == "INFO"
        assert settings.LOG_FORMAT == "json"
        assert settings.TOKEN_EXCHANGE_AUTH_MODE == "CLIENT_CREDENTIALS"
        assert settings.TOKEN_EXCHANGE_SUBJECT_FIELD == "subject"

    def test_settings_from_env(self, monkeypatch):
        """Test that settings can be loaded from environment variables."""
        monkeypatch.setenv("UPSTREAM", "https://backend.internal:9443")
        monkeypatch.setenv("TOKEN_URL", "https://idp.internal/token")
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("SCOPE", "read,write")
        monkeypatch.setenv("TOKEN_EXCHANGE_AUTH_MODE", "ACTOR_TOKEN")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.UPSTREAM == "https://backend.internal:9443"
        assert settings.PORT == 9000
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.get_auth_mode() is AuthMode.ACTOR_TOKEN

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="Log level must be one of"):
            make_settings(LOG_LEVEL="verbose")


class TestServerConfig:
    """Test conversion of settings into the immutable server config."""

    def test_scopes_keep_configured_order(self):
        config = make_settings(SCOPE="read,write").get_server_config()

        assert list(config.scopes) == ["read", "write"]

    def test_empty_scope_yields_single_empty_scope(self):
        config = make_settings(SCOPE="").get_server_config()

        assert config.scopes == ("",)

    def test_subject_header(self):
        config = make_settings(TOKEN_EXCHANGE_SUBJECT_FIELD="user").get_server_config()

        assert config.subject_field == "user"
        assert config.subject_header == "x-user"

    def test_config_is_immutable(self):
        config = make_settings().get_server_config()

        with pytest.raises(ValidationError):
            config.client_id = "other"

    def test_unknown_auth_mode(self):
        with pytest.raises(ConfigurationError, match="TOKEN_EXCHANGE_AUTH_MODE"):
            make_settings(TOKEN_EXCHANGE_AUTH_MODE="PASSWORD").get_server_config()

    @pytest.mark.parametrize("upstream", ["", "not a url", "ftp://files.test", "http://"])
    def test_malformed_upstream(self, upstream):
        with pytest.raises(ConfigurationError) as exc_info:
            make_settings(UPSTREAM=upstream).get_server_config()

        assert exc_info.value.setting == "UPSTREAM"
        assert exc_info.value.error_code == "configuration_error"

    def test_malformed_token_url(self):
        with pytest.raises(ConfigurationError) as exc_info:
            make_settings(TOKEN_URL="/token").get_server_config()

        assert exc_info.value.setting == "TOKEN_URL"

    @pytest.mark.parametrize("field", ["grant_type", "scope", "client_id", "client_secret", "actor_token"])
    def test_subject_field_cannot_overwrite_form_parameters(self, field):
        with pytest.raises(ConfigurationError, match="cannot overwrite") as exc_info:
            make_settings(TOKEN_EXCHANGE_SUBJECT_FIELD=field).get_server_config()

        assert exc_info.value.setting == "TOKEN_EXCHANGE_SUBJECT_FIELD"


class TestTLSConfiguration:
    """Test token endpoint TLS configuration."""

    def test_no_tls_settings_uses_default_verification(self):
        assert build_ssl_context(None, None, None) is True

    def test_certificate_without_key(self, tmp_path):
        cert = tmp_path / "client.pem"
        cert.write_text("not used")

        with pytest.raises(ConfigurationError, match="together") as exc_info:
            build_ssl_context(str(cert), None, None)

        assert exc_info.value.setting == "KEY_PATH"

    def test_key_without_certificate(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            build_ssl_context(None, str(tmp_path / "client.key"), None)

        assert exc_info.value.setting == "CERT_PATH"

    def test_unreadable_ca_bundle(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            build_ssl_context(None, None, str(tmp_path / "missing-ca.pem"))

        assert exc_info.value.setting == "CACERT_PATH"

    def test_unreadable_certificate(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            build_ssl_context(str(tmp_path / "missing.pem"), str(tmp_path / "missing.key"), None)

        assert exc_info.value.setting == "CERT_PATH"

    def test_token_client_uses_tls_context(self):
        context = ssl.create_default_context()

        with patch("token_proxy.core.transport.httpx.AsyncClient") as client_class:
            create_token_client(make_settings(TOKEN_TIMEOUT=5), context)

        assert client_class.call_args.kwargs["verify"] is context
