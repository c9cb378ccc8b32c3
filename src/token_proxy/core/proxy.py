"""
Reverse proxy forwarding to the upstream service.
Streams requests and responses unmodified apart from routing fields and hop-by-hop headers
"""
import logging
from typing import AsyncIterator, List, Optional, Tuple
from urllib.parse import urlsplit

import httpx
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import Response, StreamingResponse

logger = logging.getLogger(__name__)

# RFC 7230 connection-specific headers, never forwarded by proxies
HOP_BY_HOP_HEADERS = frozenset({
    b"connection",
    b"keep-alive",
    b"proxy-authenticate",
    b"proxy-authorization",
    b"proxy-connection",
    b"te",
    b"trailer",
    b"transfer-encoding",
    b"upgrade",
})

# Raw header pairs as received, so values are relayed byte for byte
HeaderList = List[Tuple[bytes, bytes]]


def join_path(base: str, path: str) -> str:
    """Join two URL paths with exactly one slash between them."""
    base_slash = base.endswith("/")
    path_slash = path.startswith("/")
    if base_slash and path_slash:
        return base + path[1:]
    if not base_slash and not path_slash:
        return base + "/" + path
    return base + path


def filter_hop_by_hop(headers: HeaderList) -> HeaderList:
    """
    Drop hop-by-hop headers, including any listed in ``Connection``.
    """
    connection_tokens = {
        token.strip().lower()
        for name, value in headers if name.lower() == b"connection"
        for token in value.split(b",")
    }
    dropped = HOP_BY_HOP_HEADERS | connection_tokens
    return [(name, value) for name, value in headers if name.lower() not in dropped]


class ProxyForwarder:
    """
    Forwards requests to a single upstream.

    Built once at startup; stateless apart from its HTTP client.
    """

    def __init__(self, upstream: str, http_client: httpx.AsyncClient):
        parts = urlsplit(upstream)
        self.scheme = parts.scheme
        self.netloc = parts.netloc
        self.base_path = parts.path
        self.base_query = parts.query
        self.http_client = http_client

    def build_url(self, path: str, query: str) -> str:
        """
        Target URL for an inbound path and query string.

        The upstream path is prefixed to the inbound path; the upstream
        query, if any, comes before the inbound one.
        """
        url = f"{self.scheme}://{self.netloc}{join_path(self.base_path, path)}"
        if self.base_query and query:
            query = f"{self.base_query}&{query}"
        else:
            query = self.base_query or query
        if query:
            url = f"{url}?{query}"
        return url

    def build_headers(self, request: Request, headers: HeaderList) -> HeaderList:
        """
        Outbound headers: hop-by-hop and Host dropped, client appended to
        X-Forwarded-For. Host is derived from the upstream URL.
        """
        outbound = [
            (name, value) for name, value in filter_hop_by_hop(headers)
            if name.lower() not in (b"host", b"x-forwarded-for")
        ]

        forwarded_for = b", ".join(value for name, value in headers if name.lower() == b"x-forwarded-for")
        if request.client and request.client.host:
            client_host = request.client.host.encode()
            forwarded_for = forwarded_for + b", " + client_host if forwarded_for else client_host
        if forwarded_for:
            outbound.append((b"x-forwarded-for", forwarded_for))

        return outbound

    async def forward(self, request: Request, headers: HeaderList) -> Response:
        """
        Forward a request upstream and stream the response back.

        Args:
            request: Inbound request (its body is streamed, not buffered)
            headers: Headers to send, already carrying Authorization

        Returns:
            Response: Streaming upstream response, or 502/504 on failure
        """
        raw_path = (request.scope.get("raw_path") or request.url.path.encode()).split(b"?", 1)[0]
        url = self.build_url(raw_path.decode("latin-1"), request.scope.get("query_string", b"").decode("latin-1"))

        upstream_request = self.http_client.build_request(
            method=request.method,
            url=url,
            headers=self.build_headers(request, headers),
            content=_request_body(request)
        )

        try:
            upstream_response = await self.http_client.send(upstream_request, stream=True)
        except httpx.TimeoutException as e:
            logger.error(
                f"Upstream timeout: {e}",
                extra={"method": request.method, "url": url}
            )
            return Response(status_code=504)
        except httpx.HTTPError as e:
            logger.error(
                f"Upstream error: {e}",
                extra={"method": request.method, "url": url}
            )
            return Response(status_code=502)

        logger.debug(
            "Request forwarded",
            extra={
                "method": request.method,
                "url": url,
                "status_code": upstream_response.status_code
            }
        )

        try:
            response = StreamingResponse(
                upstream_response.aiter_raw(),
                status_code=upstream_response.status_code,
                background=BackgroundTask(upstream_response.aclose)
            )
            response.raw_headers = [
                (name.lower(), value)
                for name, value in filter_hop_by_hop(upstream_response.headers.raw)
            ]
        except Exception:
            await upstream_response.aclose()
            raise
        return response

    async def aclose(self) -> None:
        await self.http_client.aclose()


def _request_body(request: Request) -> Optional[AsyncIterator[bytes]]:
    if "transfer-encoding" in request.headers:
        return request.stream()
    if request.headers.get("content-length", "0") not in ("", "0"):
        return request.stream()
    return None
