"""
Custom exceptions for token acquisition and proxy configuration.

This module defines the exception types raised while loading the proxy
configuration and while obtaining bearer tokens from the OAuth2 token
endpoint. Token acquisition failures are converted to a plain HTTP 500
at the route boundary; their details only ever reach the logs.
"""

from typing import Optional


class TokenProxyError(Exception):
    """
    Base exception for all token proxy failures.
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "token_proxy_error"


class ConfigurationError(TokenProxyError):
    """
    Exception raised when the proxy configuration is invalid.

    This covers:
    - Malformed upstream or token endpoint URLs
    - Only one half of the client certificate / key pair supplied
    - Unreadable certificate, key or CA bundle files
    - Unknown authentication mode

    Raised at startup; the process does not start.
    """

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(message, "configuration_error")
        self.setting = setting


class TokenAcquisitionError(TokenProxyError):
    """
    Base exception for failures talking to the token endpoint.

    Carries the HTTP status returned by the token endpoint (None for
    transport-level failures) and the error detail for logging.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        detail: Optional[str] = None
    ):
        super().__init__(message, error_code or "token_acquisition_failed")
        self.status_code = status_code
        self.detail = detail


class TokenEndpointError(TokenAcquisitionError):
    """
    Exception raised by a single token endpoint round trip.

    This occurs on network failures, non-2xx responses, unparseable
    responses and responses missing an access token.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message, "token_endpoint_error", status_code, detail)


class BaseTokenError(TokenAcquisitionError):
    """
    Exception raised when the base service token cannot be obtained.

    In actor-token mode the subject exchange is never attempted after
    this error.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message, "base_token_failed", status_code, detail)


class ExchangeTokenError(TokenAcquisitionError):
    """
    Exception raised when the subject token exchange fails.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message, "token_exchange_failed", status_code, detail)
