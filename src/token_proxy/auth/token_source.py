"""
Client-credentials token source for the proxy's service identity.

This module obtains and caches the base service token. The cached token
is the only mutable state shared between concurrent request handlers.
"""

import asyncio
import logging
from typing import Optional

import httpx

from .exceptions import BaseTokenError, TokenEndpointError
from .models import ServerConfig, Token
from .token_endpoint import build_token_form, request_token

logger = logging.getLogger(__name__)


class ClientCredentialsTokenSource:
    """
    Caching token source for the client-credentials grant.

    Returns the cached token while it is valid and fetches a new one
    once it expires. At most one refresh is in flight at a time;
    callers waiting on the refresh reuse its result.
    """

    def __init__(self, http_client: httpx.AsyncClient, config: ServerConfig):
        """
        Initialize the token source.

        Args:
            http_client: Token endpoint transport
            config: Server configuration
        """
        self.http_client = http_client
        self.config = config

        self._token: Optional[Token] = None
        self._lock = asyncio.Lock()

    async def get_token(self) -> Token:
        """
        Get a valid base service token.

        Returns:
            Token: Cached or freshly issued token

        Raises:
            BaseTokenError: If a new token cannot be obtained
        """
        token = self._token
        if token is not None and token.is_valid():
            return token

        async with self._lock:
            # Another caller may have refreshed while we waited
            token = self._token
            if token is not None and token.is_valid():
                return token

            token = await self._fetch_token()
            self._token = token
            return token

    async def _fetch_token(self) -> Token:
        form = build_token_form(
            self.config.client_id,
            self.config.client_secret,
            self.config.scopes
        )

        try:
            token = await request_token(self.http_client, self.config.token_url, form)
        except TokenEndpointError as e:
            raise BaseTokenError(
                f"Failed to obtain client credentials token: {e.message}",
                status_code=e.status_code,
                detail=e.detail
            ) from e

        logger.debug(
            "Fetched client credentials token",
            extra={
                "client_id": self.config.client_id,
                "expiry": token.expiry.isoformat() if token.expiry else None
            }
        )
        return token
