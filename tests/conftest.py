"""Shared fixtures for the token proxy test suite."""

from typing import Callable, Dict
from urllib.parse import parse_qsl

import httpx
import pytest

from token_proxy.auth.models import AuthMode, ServerConfig
from token_proxy.core.config import Settings

TOKEN_URL = "https://idp.test/oauth2/token"
UPSTREAM = "http://upstream.test"


def form_of(request: httpx.Request) -> Dict[str, str]:
    """Decode the form body of a recorded token request."""
    return dict(parse_qsl(request.content.decode(), keep_blank_values=True))


def token_endpoint(service_status: int = 200, exchange_status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    """
    Fake token endpoint.

    Client-credentials grants get ``service-token``; token exchanges get
    ``subject-token-<subject>``.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        form = form_of(request)
        if form["grant_type"] == "client_credentials":
            if service_status != 200:
                return httpx.Response(service_status, json={
                    "error": "invalid_client",
                    "error_description": "Client authentication failed"
                })
            return httpx.Response(200, json={
                "access_token": "service-token",
                "token_type": "Bearer",
                "expires_in": 3600
            })

        if exchange_status != 200:
            return httpx.Response(exchange_status, json={
                "error": "invalid_grant",
                "error_description": "Subject not allowed"
            })
        return httpx.Response(200, json={
            "access_token": f"subject-token-{form.get('subject', '')}",
            "token_type": "Bearer",
            "expires_in": 300
        })

    return handler


@pytest.fixture
def server_config():
    """Client-credentials mode configuration."""
    return ServerConfig(
        upstream=UPSTREAM,
        token_url=TOKEN_URL,
        client_id="proxy",
        client_secret="proxy-secret",
        scopes=("read", "write"),
        auth_mode=AuthMode.CLIENT_CREDENTIALS,
        subject_field="subject"
    )


@pytest.fixture
def actor_config(server_config):
    """Actor-token mode configuration."""
    return server_config.model_copy(update={"auth_mode": AuthMode.ACTOR_TOKEN})


@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        UPSTREAM=UPSTREAM,
        TOKEN_URL=TOKEN_URL,
        CLIENT_ID="proxy",
        CLIENT_SECRET="proxy-secret",
        SCOPE="read"
    )
