"""Main entry point for the token proxy application."""

import logging
import ssl
import sys
from contextlib import asynccontextmanager
from typing import Optional, Union

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import Response
from pydantic import ValidationError

from token_proxy.api.routes import router
from token_proxy.auth import ClientCredentialsTokenSource, RequestAuthenticator, TokenExchanger
from token_proxy.auth.exceptions import ConfigurationError
from token_proxy.core.config import Settings, get_settings
from token_proxy.core.logging import get_logger, setup_logging
from token_proxy.core.metrics import record_request, start_metrics_server
from token_proxy.core.proxy import ProxyForwarder
from token_proxy.core.transport import build_ssl_context, create_token_client, create_upstream_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan management
    Builds the token clients, authenticator and forwarder once and closes them on shutdown
    """
    settings: Settings = app.state.settings
    config = settings.get_server_config()

    verify = app.state.token_verify
    if verify is None:
        verify = build_ssl_context(settings.CERT_PATH, settings.KEY_PATH, settings.CACERT_PATH)

    token_client = create_token_client(settings, verify)
    token_source = ClientCredentialsTokenSource(token_client, config)
    token_exchanger = TokenExchanger(token_client, config.token_url)

    app.state.config = config
    app.state.authenticator = RequestAuthenticator(config, token_source, token_exchanger)
    app.state.forwarder = ProxyForwarder(config.upstream, create_upstream_client(settings))

    logger.info(
        "Token proxy configuration",
        extra={
            "upstream": config.upstream,
            "token_url": config.token_url,
            "client_id": config.client_id,
            "scopes": list(config.scopes),
            "auth_mode": config.auth_mode.value,
            "subject_header": config.subject_header
        }
    )

    yield

    logger.info("Shutting down token proxy...")
    await app.state.forwarder.aclose()
    await token_client.aclose()


async def general_exception_handler(request: Request, exc: Exception):
    """General exception handler for unhandled errors"""
    logger.error(
        "Unhandled exception",
        extra={
            "url": str(request.url),
            "method": request.method,
            "error": str(exc)
        },
        exc_info=True
    )
    record_request(status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app(
    settings: Optional[Settings] = None,
    token_verify: Optional[Union[ssl.SSLContext, bool]] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings (read from the environment if omitted)
        token_verify: Prebuilt token endpoint TLS configuration; built from
            settings at startup if omitted
    """
    app = FastAPI(
        title="Token Proxy",
        description="Reverse proxy attaching OAuth2 bearer tokens to upstream requests",
        version="0.1.0",
        # Every path belongs to the upstream
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan
    )
    app.state.settings = settings or get_settings()
    app.state.token_verify = token_verify

    app.add_exception_handler(Exception, general_exception_handler)
    app.include_router(router)

    return app


def main() -> None:
    """Main entry point for the application."""
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings)
    log = get_logger(__name__)

    try:
        # Fail before binding the port
        settings.get_server_config()
        token_verify = build_ssl_context(settings.CERT_PATH, settings.KEY_PATH, settings.CACERT_PATH)
    except ConfigurationError as e:
        log.critical("Couldn't initialize server", error=e.message, setting=e.setting)
        sys.exit(1)

    if settings.METRICS_PORT:
        start_metrics_server(settings.METRICS_PORT)

    log.info("Starting server", host=settings.HOST, port=settings.PORT)
    uvicorn.run(
        create_app(settings, token_verify),
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
        access_log=True,
        server_header=False,
        date_header=True,
    )


if __name__ == "__main__":
    main()
