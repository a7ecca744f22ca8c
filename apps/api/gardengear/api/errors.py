from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gardengear.context import get_correlation_id
from gardengear.platform.security.errors import WorkshopError


logger = logging.getLogger("app.errors")


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    details: Any
    correlation_id: str | None


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    payload = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        correlation_id=correlation_id,
    )
    response = JSONResponse(status_code=status_code, content=payload.__dict__)
    if correlation_id:
        response.headers["x-correlation-id"] = correlation_id
    return response


async def handle_workshop_error(request: Request, exc: WorkshopError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request.failed", extra={"error_kind": exc.kind, "error": exc.message})
    return error_response(
        request,
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    # Runs outside the middleware stack; the correlation id comes from request state.
    logger.error(
        "request.unhandled",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={
            "error_kind": type(exc).__name__,
            "method": request.method,
            "path": request.url.path,
        },
    )
    return error_response(
        request,
        status_code=500,
        code="internal_error",
        message="Internal server error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WorkshopError, handle_workshop_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
