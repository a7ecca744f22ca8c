from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from dataclasses import dataclass

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from gardengear.context import get_correlation_id
from gardengear.core.config import get_settings
from gardengear.metrics import observe_rate_limited


logger = logging.getLogger("app.request")

# Credential endpoints are throttled per client address.
_LIMITED_ROUTES = {
    ("POST", "/auth/login"): "auth.login",
    ("POST", "/auth/register"): "auth.register",
}


@dataclass
class _BucketState:
    tokens: float
    last_refill: float


class _TokenBucketLimiter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[tuple[str, str], _BucketState] = {}

    def take(self, client_key: str, route_group: str, capacity: int, window_seconds: int) -> tuple[bool, int]:
        if capacity <= 0:
            return False, window_seconds

        now = time.monotonic()
        refill_rate = capacity / float(window_seconds)
        key = (client_key, route_group)

        with self._lock:
            current = self._buckets.get(key)
            if current is None:
                current = _BucketState(tokens=float(capacity), last_refill=now)
                self._buckets[key] = current

            elapsed = max(0.0, now - current.last_refill)
            current.tokens = min(float(capacity), current.tokens + (elapsed * refill_rate))
            current.last_refill = now

            if current.tokens < 1.0:
                retry_after = max(1, math.ceil((1.0 - current.tokens) / refill_rate))
                return False, retry_after

            current.tokens -= 1.0
            return True, 0

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()


_limiter = _TokenBucketLimiter()


class AuthRateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        settings = get_settings()
        if settings.rate_limit_disabled:
            return await call_next(request)

        route_group = _LIMITED_ROUTES.get((request.method.upper(), request.url.path.rstrip("/")))
        if route_group is None:
            return await call_next(request)

        client_key = _resolve_client_key(request)
        allowed, retry_after = _limiter.take(
            client_key=client_key,
            route_group=route_group,
            capacity=settings.rate_limit_auth_attempts_per_minute,
            window_seconds=60,
        )
        if allowed:
            return await call_next(request)

        observe_rate_limited(route_group)
        logger.warning("http.rate_limited", extra={"path": request.url.path, "method": request.method})
        correlation_id = (
            get_correlation_id()
            or getattr(request.state, "correlation_id", None)
            or str(uuid.uuid4())
        )
        response = JSONResponse(
            status_code=429,
            content={
                "code": "rate_limited",
                "message": "Too many requests",
                "details": None,
                "correlation_id": correlation_id,
            },
        )
        response.headers["Retry-After"] = str(retry_after)
        response.headers["X-Correlation-Id"] = correlation_id
        return response


def _resolve_client_key(request: Request) -> str:
    if request.client is None or not request.client.host:
        return "unknown"
    return request.client.host


def reset_rate_limiter() -> None:
    _limiter.clear()
