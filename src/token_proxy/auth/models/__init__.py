"""
Authentication models package.

The models are organized into focused modules:
- server_config: process-wide configuration and the AuthMode enumeration
- exchange_request: parameters of a single token exchange call
- token: bearer tokens returned by the token endpoint
"""

from .server_config import AuthMode, ServerConfig
from .exchange_request import (
    GRANT_TYPE_TOKEN_EXCHANGE,
    RESERVED_FORM_FIELDS,
    TOKEN_TYPE_ACCESS_TOKEN,
    ExchangeRequest,
)
from .token import Token

__all__ = [
    "AuthMode",
    "ServerConfig",
    "ExchangeRequest",
    "GRANT_TYPE_TOKEN_EXCHANGE",
    "RESERVED_FORM_FIELDS",
    "TOKEN_TYPE_ACCESS_TOKEN",
    "Token",
]
