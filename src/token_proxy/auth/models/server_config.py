"""
Server configuration model.

This module contains the immutable ServerConfig shared read-only by all
request handlers, and the AuthMode enumeration selecting how subject
tokens are exchanged.
"""

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class AuthMode(str, Enum):
    """
    How the proxy authenticates a subject token exchange.

    Parsed once at configuration load time.
    """

    CLIENT_CREDENTIALS = "CLIENT_CREDENTIALS"
    """
    Exchange the subject directly, authenticating the exchange call
    with the proxy's own client ID and secret.
    """

    ACTOR_TOKEN = "ACTOR_TOKEN"
    """
    Fetch the proxy's service token first and present it as the actor
    token of the exchange. No client credentials are sent with the
    exchange call itself.
    """


class ServerConfig(BaseModel):
    """
    Process-lifetime proxy configuration.

    Example:
        config = ServerConfig(
            upstream="http://backend:9000",
            token_url="https://idp.example.com/oauth2/token",
            client_id="proxy",
            client_secret="secret",
            scopes=("read", "write"),
            auth_mode=AuthMode.ACTOR_TOKEN,
        )
    """

    model_config = ConfigDict(frozen=True)

    upstream: str = Field(..., description="Base URL requests are forwarded to")
    token_url: str = Field(..., description="OAuth2 token endpoint URL")
    client_id: str = Field(default="", description="Client ID of the proxy's service identity")
    client_secret: str = Field(default="", description="Client secret of the proxy's service identity")
    scopes: Tuple[str, ...] = Field(default=("",), description="Requested scopes, in configured order")
    auth_mode: AuthMode = Field(default=AuthMode.CLIENT_CREDENTIALS, description="Subject exchange mode")
    subject_field: str = Field(default="subject", min_length=1, description="Subject parameter name")

    @property
    def subject_header(self) -> str:
        """Name of the inbound header carrying the subject, e.g. ``x-subject``."""
        return f"x-{self.subject_field}"
