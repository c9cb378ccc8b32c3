"""Prometheus metrics for the token proxy."""

import logging

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total number of http requests handled",
    ["status"]
)

TOKEN_VALIDATION_TIME = Histogram(
    "nginx_subrequest_auth_jwt_token_validation_time_seconds",
    "Number of seconds spent validating token",
    # 100ns, x3, six buckets
    buckets=[100e-9 * 3 ** i for i in range(6)]
)

for _status in ("200", "401", "405", "500"):
    REQUESTS_TOTAL.labels(status=_status)


def record_request(status_code: int) -> None:
    REQUESTS_TOTAL.labels(status=str(status_code)).inc()


def start_metrics_server(port: int) -> None:
    """Expose /metrics on a dedicated port so no upstream path is shadowed."""
    start_http_server(port)
    logger.info("Metrics server started", extra={"port": port})
