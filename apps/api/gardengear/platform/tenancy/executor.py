from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.engine import Connection, Engine, RootTransaction
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from gardengear.metrics import observe_pool_acquire_timeout, observe_scoped_transaction
from gardengear.otel import get_tracer
from gardengear.platform.security.context import CallerIdentity, SecurityContext
from gardengear.platform.security.errors import ResourceExhaustedError
from gardengear.platform.tenancy.policies import install_row_policy_emulation
from gardengear.platform.tenancy.scope import (
    bind_security_context,
    clear_security_context,
    supports_row_security,
)


T = TypeVar("T")

logger = logging.getLogger("app.tenancy")
tracer = get_tracer("gardengear.tenancy")


class TenantScopedExecutor:
    """Runs units of work inside a transaction bound to a caller's tenant scope.

    Each call takes exactly one pooled connection, binds the caller's
    SecurityContext to the transaction before the unit of work runs, and
    clears it again before the connection goes back to the pool. Failures,
    including cancellations raised as ``BaseException``, roll back and are
    re-raised unchanged.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        # rollback_only: Session.commit() inside a unit of work never commits
        # the outer transaction; only run_scoped does.
        self._session_factory: sessionmaker[Session] = sessionmaker(
            join_transaction_mode="rollback_only",
            expire_on_commit=False,
            autoflush=True,
        )
        if not supports_row_security(engine.dialect):
            install_row_policy_emulation(self._session_factory)

    def run_scoped(self, identity: CallerIdentity, work: Callable[[Session], T]) -> T:
        context = SecurityContext.from_identity(identity)
        started = time.perf_counter()
        outcome = "rollback"

        with tracer.start_as_current_span("tenant.run_scoped") as span:
            span.set_attribute("tenant.is_platform_admin", context.is_platform_admin)
            span.set_attribute("tenant.organisation_id", context.organisation_id or "")

            connection = self._acquire()
            try:
                transaction = connection.begin()
                try:
                    bind_security_context(connection, context)
                    with self._session_factory(bind=connection) as session:
                        result = work(session)
                        session.flush()
                    transaction.commit()
                except BaseException as exc:
                    self._rollback(transaction, exc)
                    raise
                outcome = "commit"
                return result
            finally:
                clear_security_context(connection)
                connection.close()
                duration = time.perf_counter() - started
                span.set_attribute("tenant.outcome", outcome)
                observe_scoped_transaction(outcome, duration)
                logger.debug(
                    "tenancy.transaction",
                    extra={
                        "outcome": outcome,
                        "organisation_id": context.organisation_id,
                        "duration_ms": round(duration * 1000, 2),
                    },
                )

    def _acquire(self) -> Connection:
        try:
            return self.engine.connect()
        except PoolTimeoutError as exc:
            observe_pool_acquire_timeout()
            logger.warning("tenancy.pool_exhausted", extra={"error": str(exc)})
            raise ResourceExhaustedError("Database connection pool exhausted") from exc

    @staticmethod
    def _rollback(transaction: RootTransaction, cause: BaseException) -> None:
        if not transaction.is_active:
            return
        try:
            transaction.rollback()
        except Exception:
            # The original failure is re-raised by the caller; this one is only logged.
            logger.exception("tenancy.rollback_failed", extra={"error_kind": type(cause).__name__})
