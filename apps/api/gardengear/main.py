from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from gardengear.api.errors import register_exception_handlers
from gardengear.api.routes import router as api_router
from gardengear.core.config import get_settings
from gardengear.core.context import RequestContextMiddleware
from gardengear.logging import configure_logging
from gardengear.middleware.correlation_id import CorrelationIdMiddleware
from gardengear.middleware.rate_limit import AuthRateLimitMiddleware
from gardengear.middleware.request_logging import RequestLoggingMiddleware
from gardengear.otel import configure_tracing


configure_logging()
logger = logging.getLogger("app.lifecycle")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("system.started")
    yield
    logger.info("system.stopped")


settings = get_settings()

app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
app.add_middleware(AuthRateLimitMiddleware)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
register_exception_handlers(app)
app.include_router(api_router)

configure_tracing(settings)

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app)
