from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import TYPE_CHECKING

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase

from gardengear.core.config import Settings, get_settings

if TYPE_CHECKING:
    from gardengear.platform.tenancy.executor import TenantScopedExecutor


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_engine(settings: Settings) -> Engine:
    """Create the shared engine; its QueuePool is the only pooled resource."""

    return create_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout_seconds,
        pool_pre_ping=True,
    )


@lru_cache
def get_default_executor() -> TenantScopedExecutor:
    from gardengear.platform.tenancy.executor import TenantScopedExecutor

    return TenantScopedExecutor(build_engine(get_settings()))


def get_executor() -> TenantScopedExecutor:
    """FastAPI dependency; tests override it with executors over isolated engines."""

    return get_default_executor()
