from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


@dataclass
class RequestContext:
    request_id: str
    correlation_id: str
    client_address: str
    user_id: str | None = None
    organisation_id: str | None = None
    role: str | None = None


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        correlation_id = getattr(request.state, "correlation_id", None)
        request.state.context = RequestContext(
            request_id=correlation_id or "",
            correlation_id=correlation_id or "",
            client_address=request.client.host if request.client else "unknown",
        )
        response = await call_next(request)
        response.headers["x-request-id"] = request.state.context.request_id
        return response
