"""
Authentication module for the token proxy.

This module obtains the bearer tokens attached to proxied requests:
the client-credentials token source, RFC 8693 token exchange, and the
per-request authenticator choosing between them.
"""

from .authenticator import RequestAuthenticator
from .token_source import ClientCredentialsTokenSource
from .token_exchanger import TokenExchanger
from .models import AuthMode, ServerConfig, ExchangeRequest, Token
from .exceptions import (
    TokenProxyError,
    ConfigurationError,
    TokenAcquisitionError,
    TokenEndpointError,
    BaseTokenError,
    ExchangeTokenError
)

__all__ = [
    "RequestAuthenticator",
    "ClientCredentialsTokenSource",
    "TokenExchanger",
    "AuthMode",
    "ServerConfig",
    "ExchangeRequest",
    "Token",
    "TokenProxyError",
    "ConfigurationError",
    "TokenAcquisitionError",
    "TokenEndpointError",
    "BaseTokenError",
    "ExchangeTokenError"
]
