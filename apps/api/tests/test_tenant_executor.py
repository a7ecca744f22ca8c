from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy import create_engine, event, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import QueuePool

from gardengear.core.database import Base
from gardengear.core.rbac import Role
from gardengear.platform.security.context import CallerIdentity, SecurityContext
from gardengear.platform.security.errors import ForbiddenError, ResourceExhaustedError
from gardengear.platform.tenancy import executor as executor_module
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.platform.tenancy.scope import current_security_context
from gardengear.workshop.customers.models import Customer
from gardengear.workshop.jobs import models as job_models  # noqa: F401
from gardengear.workshop.products import models as product_models  # noqa: F401
from gardengear.workshop.users import models as user_models  # noqa: F401


ORG_A = CallerIdentity(user_id="user-a", organisation_id="org-a", role=Role.COUNTER)
ORG_B = CallerIdentity(user_id="user-b", organisation_id="org-b", role=Role.MANAGER)
ORPHAN = CallerIdentity(user_id="user-x", organisation_id=None, role=Role.COUNTER)
PLATFORM = CallerIdentity(user_id="admin-1", organisation_id=None, role=Role.ADMIN)


class Cancelled(BaseException):
    pass


class PoolCounter:
    def __init__(self, engine: Engine) -> None:
        self.checkouts = 0
        self.checkins = 0
        event.listen(engine.pool, "checkout", self._on_checkout)
        event.listen(engine.pool, "checkin", self._on_checkin)

    def _on_checkout(self, *args: object) -> None:
        self.checkouts += 1

    def _on_checkin(self, *args: object) -> None:
        self.checkins += 1


@pytest.fixture()
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    # A single pooled connection: every unit of work reuses the same DBAPI connection.
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'tenancy.db'}",
        poolclass=QueuePool,
        pool_size=1,
        max_overflow=0,
        pool_timeout=0.2,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def executor(engine: Engine) -> TenantScopedExecutor:
    return TenantScopedExecutor(engine)


def _add_customer(identity: CallerIdentity, account_number: str, name: str):  # type: ignore[no-untyped-def]
    def work(session: Session) -> str:
        session.add(
            Customer(
                organisation_id=identity.organisation_id,
                account_number=account_number,
                account_type="Personal",
                name=name,
            )
        )
        return account_number

    return work


def _visible_names(session: Session) -> list[str]:
    return sorted(row.name for row in session.scalars(select(Customer)).all())


def test_tenants_sharing_one_connection_never_see_each_other(executor: TenantScopedExecutor) -> None:
    executor.run_scoped(ORG_A, _add_customer(ORG_A, "AA001", "Alice"))
    executor.run_scoped(ORG_B, _add_customer(ORG_B, "BB001", "Bob"))

    assert executor.run_scoped(ORG_A, _visible_names) == ["Alice"]
    assert executor.run_scoped(ORG_B, _visible_names) == ["Bob"]
    assert executor.run_scoped(ORG_A, _visible_names) == ["Alice"]


def test_platform_admin_sees_every_tenant(executor: TenantScopedExecutor) -> None:
    executor.run_scoped(ORG_A, _add_customer(ORG_A, "AA001", "Alice"))
    executor.run_scoped(ORG_B, _add_customer(ORG_B, "BB001", "Bob"))

    assert executor.run_scoped(PLATFORM, _visible_names) == ["Alice", "Bob"]


def test_non_admin_without_org_sees_nothing(executor: TenantScopedExecutor) -> None:
    executor.run_scoped(ORG_A, _add_customer(ORG_A, "AA001", "Alice"))

    seen: list[SecurityContext | None] = []

    def work(session: Session) -> list[str]:
        seen.append(current_security_context(session.connection()))
        return _visible_names(session)

    assert executor.run_scoped(ORPHAN, work) == []
    assert seen == [SecurityContext(organisation_id=None, is_platform_admin=False)]


def test_context_is_bound_during_work_and_cleared_after_release(
    engine: Engine, executor: TenantScopedExecutor
) -> None:
    seen: list[SecurityContext | None] = []

    def work(session: Session) -> None:
        seen.append(current_security_context(session.connection()))

    executor.run_scoped(ORG_B, work)

    assert seen == [SecurityContext(organisation_id="org-b", is_platform_admin=False)]
    with engine.connect() as connection:
        assert current_security_context(connection) is None


def test_connection_released_exactly_once_on_success(engine: Engine, executor: TenantScopedExecutor) -> None:
    counter = PoolCounter(engine)

    assert executor.run_scoped(ORG_A, lambda session: 42) == 42

    assert (counter.checkouts, counter.checkins) == (1, 1)


def test_failed_work_rolls_back_and_reraises_original(engine: Engine, executor: TenantScopedExecutor) -> None:
    counter = PoolCounter(engine)
    failure = ValueError("boom")

    def work(session: Session) -> None:
        _add_customer(ORG_A, "AA001", "Alice")(session)
        session.flush()
        raise failure

    with pytest.raises(ValueError) as excinfo:
        executor.run_scoped(ORG_A, work)

    assert excinfo.value is failure
    assert (counter.checkouts, counter.checkins) == (1, 1)
    assert executor.run_scoped(PLATFORM, _visible_names) == []


def test_cancellation_takes_the_rollback_path(engine: Engine, executor: TenantScopedExecutor) -> None:
    counter = PoolCounter(engine)

    def work(session: Session) -> None:
        _add_customer(ORG_A, "AA001", "Alice")(session)
        session.flush()
        raise Cancelled()

    with pytest.raises(Cancelled):
        executor.run_scoped(ORG_A, work)

    assert (counter.checkouts, counter.checkins) == (1, 1)
    assert executor.run_scoped(PLATFORM, _visible_names) == []
    with engine.connect() as connection:
        assert current_security_context(connection) is None


def test_bind_failure_releases_connection_without_running_work(
    engine: Engine,
    executor: TenantScopedExecutor,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    counter = PoolCounter(engine)
    calls: list[Session] = []

    def failing_bind(connection: object, context: SecurityContext) -> None:
        raise RuntimeError("set_config failed")

    monkeypatch.setattr(executor_module, "bind_security_context", failing_bind)

    with pytest.raises(RuntimeError, match="set_config failed"):
        executor.run_scoped(ORG_A, calls.append)

    assert calls == []
    assert (counter.checkouts, counter.checkins) == (1, 1)


def test_pool_exhaustion_is_resource_exhausted(engine: Engine, executor: TenantScopedExecutor) -> None:
    calls: list[Session] = []
    held = engine.connect()
    try:
        with pytest.raises(ResourceExhaustedError):
            executor.run_scoped(ORG_A, calls.append)
    finally:
        held.close()

    assert calls == []
    assert executor.run_scoped(ORG_A, lambda session: "recovered") == "recovered"


def test_insert_into_another_tenant_is_rejected(executor: TenantScopedExecutor) -> None:
    with pytest.raises(ForbiddenError):
        executor.run_scoped(ORG_A, _add_customer(ORG_B, "BB001", "Bob"))

    assert executor.run_scoped(PLATFORM, _visible_names) == []


def test_bulk_update_cannot_reach_another_tenant(executor: TenantScopedExecutor) -> None:
    executor.run_scoped(ORG_A, _add_customer(ORG_A, "AA001", "Alice"))

    def rename(session: Session) -> int:
        result = session.execute(
            update(Customer).where(Customer.account_number == "AA001").values(name="Mallory"),
            execution_options={"synchronize_session": False},
        )
        return result.rowcount

    assert executor.run_scoped(ORG_B, rename) == 0
    assert executor.run_scoped(ORG_A, _visible_names) == ["Alice"]
    assert executor.run_scoped(ORG_A, rename) == 1


def test_rollback_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    class BrokenTransaction:
        is_active = True

        def rollback(self) -> None:
            raise RuntimeError("connection lost")

    caplog.set_level(logging.ERROR, logger="app.tenancy")

    TenantScopedExecutor._rollback(BrokenTransaction(), ValueError("original"))  # type: ignore[arg-type]

    records = [record for record in caplog.records if record.getMessage() == "tenancy.rollback_failed"]
    assert records
    assert getattr(records[0], "error_kind", None) == "ValueError"


def test_transaction_outcome_is_logged(executor: TenantScopedExecutor, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="app.tenancy")

    executor.run_scoped(ORG_A, lambda session: None)
    with pytest.raises(KeyError):
        executor.run_scoped(ORG_A, lambda session: {}["missing"])

    outcomes = [
        getattr(record, "outcome", None)
        for record in caplog.records
        if record.name == "app.tenancy" and record.getMessage() == "tenancy.transaction"
    ]
    assert outcomes == ["commit", "rollback"]
