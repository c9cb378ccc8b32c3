"""
Token proxy routes
Every inbound request is authenticated with a freshly obtained bearer token and forwarded upstream
"""
import logging
import time
from typing import Iterable, List, Tuple

from fastapi import APIRouter, Depends, Request, Response, status
from starlette.requests import ClientDisconnect

from token_proxy.auth.authenticator import RequestAuthenticator
from token_proxy.auth.exceptions import TokenAcquisitionError
from token_proxy.core.disconnect import DisconnectWatcher
from token_proxy.core.metrics import TOKEN_VALIDATION_TIME, record_request
from token_proxy.core.proxy import ProxyForwarder

logger = logging.getLogger(__name__)

# Create API router
router = APIRouter()

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Non-standard status for requests abandoned by the client
CLIENT_CLOSED_REQUEST = 499


def get_authenticator(request: Request) -> RequestAuthenticator:
    """Dependency injection for the request authenticator built at startup"""
    return request.app.state.authenticator


def get_forwarder(request: Request) -> ProxyForwarder:
    """Dependency injection for the upstream forwarder built at startup"""
    return request.app.state.forwarder


def attach_bearer_token(headers: Iterable[Tuple[bytes, bytes]], access_token: str) -> List[Tuple[bytes, bytes]]:
    """Replace any inbound Authorization header with the obtained bearer token."""
    attached = [(name, value) for name, value in headers if name.lower() != b"authorization"]
    attached.append((b"authorization", b"Bearer " + access_token.encode()))
    return attached


@router.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy_request(
    request: Request,
    authenticator: RequestAuthenticator = Depends(get_authenticator),
    forwarder: ProxyForwarder = Depends(get_forwarder)
) -> Response:
    """Authenticate the request and relay it to the upstream"""
    watcher = DisconnectWatcher(request.receive)
    started = time.perf_counter()
    try:
        access_token = await watcher.run(authenticator.authenticate(request.headers))
    except ClientDisconnect:
        logger.info(
            "Client disconnected before a token was obtained",
            extra={"method": request.method, "path": request.url.path}
        )
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    except TokenAcquisitionError as e:
        logger.error(
            f"Failed to obtain token: {e.message}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "error_code": e.error_code,
                "token_endpoint_status": e.status_code,
                "detail": e.detail
            }
        )
        watcher.close()
        record_request(status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    finally:
        TOKEN_VALIDATION_TIME.observe(time.perf_counter() - started)

    headers = attach_bearer_token(request.headers.raw, access_token)
    try:
        response = await forwarder.forward(Request(request.scope, watcher.receive), headers)
    finally:
        watcher.close()

    record_request(response.status_code)
    return response
