"""
HTTP transports for the token endpoint and the upstream.

The token endpoint client is built once at startup and shared by the
base token source and the token exchanger, so that both use the same
(optionally mutual) TLS settings.
"""

import logging
import ssl
from typing import Optional, Union

import httpx

from token_proxy.auth.exceptions import ConfigurationError
from token_proxy.core.config import Settings

logger = logging.getLogger(__name__)


def build_ssl_context(
    cert_path: Optional[str],
    key_path: Optional[str],
    ca_cert_path: Optional[str]
) -> Union[ssl.SSLContext, bool]:
    """
    Build the TLS configuration for the token endpoint.

    Args:
        cert_path: Client certificate (PEM)
        key_path: Private key of the client certificate (PEM)
        ca_cert_path: CA bundle replacing the system trust store (PEM)

    Returns:
        SSLContext when a client certificate or CA bundle is configured,
        otherwise True (httpx default verification)

    Raises:
        ConfigurationError: If only one of cert/key is given or a file
            cannot be loaded
    """
    if bool(cert_path) != bool(key_path):
        raise ConfigurationError(
            "CERT_PATH and KEY_PATH must be configured together",
            "CERT_PATH" if not cert_path else "KEY_PATH"
        )

    if not cert_path and not ca_cert_path:
        return True

    try:
        context = ssl.create_default_context(cafile=ca_cert_path or None)
    except (OSError, ssl.SSLError) as e:
        raise ConfigurationError(f"Cannot load CA bundle {ca_cert_path}: {e}", "CACERT_PATH") from e

    if cert_path:
        try:
            context.load_cert_chain(cert_path, key_path)
        except (OSError, ssl.SSLError) as e:
            raise ConfigurationError(
                f"Cannot load client certificate {cert_path} / {key_path}: {e}",
                "CERT_PATH"
            ) from e

    logger.info(
        "Token endpoint TLS configured",
        extra={
            "client_certificate": bool(cert_path),
            "custom_ca": bool(ca_cert_path)
        }
    )
    return context


def create_token_client(settings: Settings, verify: Union[ssl.SSLContext, bool]) -> httpx.AsyncClient:
    """
    Create the HTTP client used for every token endpoint call.

    Args:
        settings: Application settings (timeouts)
        verify: TLS configuration from build_ssl_context
    """
    return httpx.AsyncClient(
        verify=verify,
        timeout=httpx.Timeout(settings.TOKEN_TIMEOUT),
        headers={"User-Agent": "token-proxy/0.1.0"}
    )


def create_upstream_client(settings: Settings) -> httpx.AsyncClient:
    """Create the HTTP client used to forward requests upstream."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.UPSTREAM_TIMEOUT),
        # Redirects are relayed to the caller, never followed
        follow_redirects=False
    )
