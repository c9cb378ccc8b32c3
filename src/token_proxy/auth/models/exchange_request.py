"""
Token exchange request model.

This module contains the ExchangeRequest model describing one RFC 8693
token exchange call, and the constructors for the two authentication
modes supported by the proxy.
"""

from typing import Dict, List

from pydantic import BaseModel, Field

from .server_config import ServerConfig

GRANT_TYPE_TOKEN_EXCHANGE = "urn:ietf:params:oauth:grant-type:token-exchange"
TOKEN_TYPE_ACCESS_TOKEN = "urn:ietf:params:oauth:token-type:access_token"

# Form fields the token request sets itself; a subject field may not reuse them
RESERVED_FORM_FIELDS = frozenset({
    "grant_type",
    "scope",
    "client_id",
    "client_secret",
    "requested_token_type",
    "actor_token",
    "actor_token_type",
})


class ExchangeRequest(BaseModel):
    """
    Parameters of a single token exchange call.

    Built fresh for every request carrying a subject; never cached.

    Example:
        request = ExchangeRequest.for_actor_token(config, "alice", actor_token)
        token = await exchanger.exchange(request)
    """

    client_id: str = Field(default="", description="Client ID sent with the exchange (omitted when empty)")
    client_secret: str = Field(default="", description="Client secret sent with the exchange (omitted when empty)")
    scopes: List[str] = Field(default_factory=list, description="Requested scopes")
    endpoint_params: Dict[str, str] = Field(
        default_factory=dict,
        description="Additional form parameters, overriding the default grant type"
    )

    @classmethod
    def for_client_credentials(cls, config: ServerConfig, subject: str) -> "ExchangeRequest":
        """
        Exchange authenticated by the proxy's own client credentials.

        Args:
            config: Server configuration
            subject: Subject identity taken from the inbound request

        Returns:
            ExchangeRequest: Request carrying the base client ID and secret
        """
        return cls(
            client_id=config.client_id,
            client_secret=config.client_secret,
            scopes=list(config.scopes),
            endpoint_params={
                "grant_type": GRANT_TYPE_TOKEN_EXCHANGE,
                "requested_token_type": TOKEN_TYPE_ACCESS_TOKEN,
                config.subject_field: subject,
            }
        )

    @classmethod
    def for_actor_token(cls, config: ServerConfig, subject: str, actor_token: str) -> "ExchangeRequest":
        """
        Exchange authenticated by the proxy's service token as actor.

        Args:
            config: Server configuration
            subject: Subject identity taken from the inbound request
            actor_token: Access token of the proxy's service identity

        Returns:
            ExchangeRequest: Request without client credentials
        """
        return cls(
            client_id="",
            client_secret="",
            scopes=list(config.scopes),
            endpoint_params={
                "grant_type": GRANT_TYPE_TOKEN_EXCHANGE,
                "requested_token_type": TOKEN_TYPE_ACCESS_TOKEN,
                "actor_token_type": TOKEN_TYPE_ACCESS_TOKEN,
                "actor_token": actor_token,
                config.subject_field: subject,
            }
        )
