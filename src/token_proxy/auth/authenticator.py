"""
Request authenticator.

Decides, for each inbound request, which bearer token is attached before
the request is forwarded upstream:

1. No subject header: the proxy's own client-credentials token
2. Subject header, CLIENT_CREDENTIALS mode: one token exchange
   authenticated with the proxy's client ID and secret
3. Subject header, ACTOR_TOKEN mode: the proxy's own token first, then a
   token exchange presenting it as the actor token
"""

import logging
from typing import Mapping, Optional

from .models import AuthMode, ExchangeRequest, ServerConfig
from .token_exchanger import TokenExchanger
from .token_source import ClientCredentialsTokenSource

logger = logging.getLogger(__name__)


class RequestAuthenticator:
    """
    Per-request authentication decision.

    Holds no per-request state; safe to share between all concurrent
    request handlers.
    """

    def __init__(
        self,
        config: ServerConfig,
        token_source: ClientCredentialsTokenSource,
        token_exchanger: TokenExchanger
    ):
        self.config = config
        self.token_source = token_source
        self.token_exchanger = token_exchanger

    def get_subject(self, headers: Mapping[str, str]) -> Optional[str]:
        """Return the subject from the inbound headers; empty counts as absent."""
        value = headers.get(self.config.subject_header)
        if not value:
            return None
        return _recover_utf8(value)

    async def authenticate(self, headers: Mapping[str, str]) -> str:
        """
        Obtain the bearer token for an inbound request.

        Args:
            headers: Inbound request headers (case-insensitive mapping)

        Returns:
            str: Access token to send as ``Authorization: Bearer <token>``

        Raises:
            BaseTokenError: If the proxy's own token cannot be obtained
            ExchangeTokenError: If the subject token exchange fails
        """
        subject = self.get_subject(headers)

        if subject is None:
            token = await self.token_source.get_token()
            return token.access_token

        exchange_request = await self.build_exchange_request(subject)
        token = await self.token_exchanger.exchange(exchange_request)

        logger.debug(
            "Exchanged subject token",
            extra={
                "subject": subject,
                "auth_mode": self.config.auth_mode.value
            }
        )
        return token.access_token

    async def build_exchange_request(self, subject: str) -> ExchangeRequest:
        """
        Build the exchange request for the configured mode.

        In ACTOR_TOKEN mode this fetches the proxy's own token first;
        a BaseTokenError propagates before any exchange is attempted.
        """
        if self.config.auth_mode is AuthMode.ACTOR_TOKEN:
            actor_token = await self.token_source.get_token()
            return ExchangeRequest.for_actor_token(self.config, subject, actor_token.access_token)

        return ExchangeRequest.for_client_credentials(self.config, subject)


def _recover_utf8(value: str) -> str:
    """
    Undo the latin-1 decoding ASGI servers apply to header values, so a
    UTF-8 subject reaches the token endpoint with its original bytes.
    Values that are not UTF-8 are returned unchanged.
    """
    try:
        return value.encode("latin-1").decode("utf-8")
    except UnicodeError:
        return value
