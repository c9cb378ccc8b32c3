"""
OAuth2 token exchange (RFC 8693) for subject-scoped tokens.
"""

import logging

import httpx

from .exceptions import ExchangeTokenError, TokenEndpointError
from .models import ExchangeRequest, Token
from .token_endpoint import build_token_form, request_token

logger = logging.getLogger(__name__)


class TokenExchanger:
    """
    Executes token exchange requests against the token endpoint.

    Every call is a single round trip: no caching and no retries. The
    HTTP client is the same one used by the base token source, so both
    share the TLS transport settings.
    """

    def __init__(self, http_client: httpx.AsyncClient, token_url: str):
        self.http_client = http_client
        self.token_url = token_url

    async def exchange(self, request: ExchangeRequest) -> Token:
        """
        Exchange a subject for an access token.

        Args:
            request: Exchange parameters

        Returns:
            Token: Subject-scoped token

        Raises:
            ExchangeTokenError: If the exchange fails
        """
        form = build_token_form(
            request.client_id,
            request.client_secret,
            request.scopes,
            request.endpoint_params
        )

        try:
            return await request_token(self.http_client, self.token_url, form)
        except TokenEndpointError as e:
            raise ExchangeTokenError(
                f"Token exchange failed: {e.message}",
                status_code=e.status_code,
                detail=e.detail
            ) from e
