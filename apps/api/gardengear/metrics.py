from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

scoped_transactions_total = Counter(
    "scoped_transactions_total",
    "Tenant-scoped transactions by outcome",
    ["outcome"],
)

scoped_transaction_duration_seconds = Histogram(
    "scoped_transaction_duration_seconds",
    "Tenant-scoped transaction duration in seconds",
    ["outcome"],
)

db_pool_acquire_timeouts_total = Counter(
    "db_pool_acquire_timeouts_total",
    "Connection pool acquisitions that timed out",
)

auth_failures_total = Counter(
    "auth_failures_total",
    "Rejected credentials by failure kind",
    ["kind"],
)

rate_limited_requests_total = Counter(
    "rate_limited_requests_total",
    "Requests rejected by the rate limiter",
    ["route_group"],
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _normalize_route_template(path: str) -> str:
    return _PATH_PARAM_RE.sub("{id}", path)


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        path_format = getattr(route, "path_format", None)
        if isinstance(path_format, str) and path_format:
            return _normalize_route_template(path_format)
        route_path = getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return _normalize_route_template(route_path)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    status_str = str(status)
    http_requests_total.labels(method=method, path=path, status=status_str).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_scoped_transaction(outcome: str, duration: float) -> None:
    scoped_transactions_total.labels(outcome=outcome).inc()
    scoped_transaction_duration_seconds.labels(outcome=outcome).observe(duration)


def observe_pool_acquire_timeout() -> None:
    db_pool_acquire_timeouts_total.inc()


def observe_auth_failure(kind: str) -> None:
    auth_failures_total.labels(kind=kind).inc()


def observe_rate_limited(route_group: str) -> None:
    rate_limited_requests_total.labels(route_group=route_group).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
