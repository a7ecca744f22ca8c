from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from gardengear import audit
from gardengear.auth.passwords import hash_password
from gardengear.core.auth import issue_token
from gardengear.core.config import get_settings
from gardengear.core.database import Base, get_executor
from gardengear.core.rbac import Role
from gardengear.main import app
from gardengear.middleware.rate_limit import reset_rate_limiter
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.security.errors import NotFoundError
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.users.models import StaffUser
from gardengear.workshop.users.service import staff_user_service


PLATFORM = CallerIdentity(user_id="owner-1", organisation_id=None, role=Role.OWNER)


@pytest.fixture(autouse=True)
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("RATE_LIMIT_DISABLED", "true")
    monkeypatch.setenv("PASSWORD_HASH_ITERATIONS", "1000")
    get_settings.cache_clear()
    reset_rate_limiter()
    audit.audit_entries.clear()
    yield
    audit.audit_entries.clear()
    get_settings.cache_clear()
    reset_rate_limiter()


@pytest.fixture()
def executor() -> Generator[TenantScopedExecutor, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield TenantScopedExecutor(engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def client(executor: TenantScopedExecutor) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_executor] = lambda: executor
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _seed_user(executor: TenantScopedExecutor, *, name: str, role: Role, organisation_id: str | None) -> CallerIdentity:
    def work(session: Session) -> str:
        user = StaffUser(
            name=name,
            email=f"{name.lower()}@example.com",
            password_hash=hash_password("correct horse", iterations=1000),
            role=role.value,
            organisation_id=organisation_id,
        )
        session.add(user)
        session.flush()
        return str(user.id)

    user_id = executor.run_scoped(PLATFORM, work)
    return CallerIdentity(user_id=user_id, organisation_id=organisation_id, role=role)


def _headers(identity: CallerIdentity) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(identity)}"}


def test_list_users_is_scoped_to_tenant(client: TestClient, executor: TenantScopedExecutor) -> None:
    manager_a = _seed_user(executor, name="Sarah", role=Role.MANAGER, organisation_id="org-a")
    _seed_user(executor, name="Mike", role=Role.MECHANIC, organisation_id="org-a")
    _seed_user(executor, name="Dave", role=Role.MECHANIC, organisation_id="org-b")

    response = client.get("/api/users", headers=_headers(manager_a))

    assert response.status_code == 200
    assert [row["name"] for row in response.json()] == ["Mike", "Sarah"]
    assert all("password_hash" not in row for row in response.json())


def test_list_users_filtered_by_role(client: TestClient, executor: TenantScopedExecutor) -> None:
    manager_a = _seed_user(executor, name="Sarah", role=Role.MANAGER, organisation_id="org-a")
    _seed_user(executor, name="Mike", role=Role.MECHANIC, organisation_id="org-a")

    response = client.get("/api/users", params={"role": "Mechanic"}, headers=_headers(manager_a))

    assert [row["name"] for row in response.json()] == ["Mike"]


def test_admin_deletes_any_tenant_user(client: TestClient, executor: TenantScopedExecutor) -> None:
    admin = _seed_user(executor, name="Alice", role=Role.ADMIN, organisation_id=None)
    target = _seed_user(executor, name="Mike", role=Role.MECHANIC, organisation_id="org-a")

    response = client.delete(f"/api/users/{target.user_id}", headers=_headers(admin))

    assert response.status_code == 200
    assert response.json() == {"message": "User deleted successfully"}
    remaining = client.get("/api/users", headers=_headers(admin)).json()
    assert [row["name"] for row in remaining] == ["Alice"]
    assert audit.audit_entries[-1]["action"] == "user.deleted"


def test_manager_cannot_delete_users(client: TestClient, executor: TenantScopedExecutor) -> None:
    manager_a = _seed_user(executor, name="Sarah", role=Role.MANAGER, organisation_id="org-a")
    target = _seed_user(executor, name="Mike", role=Role.MECHANIC, organisation_id="org-a")

    response = client.delete(f"/api/users/{target.user_id}", headers=_headers(manager_a))

    assert response.status_code == 403


def test_tenant_scoped_delete_of_other_tenant_user_matches_missing_user(
    client: TestClient, executor: TenantScopedExecutor
) -> None:
    manager_a = _seed_user(executor, name="Sarah", role=Role.MANAGER, organisation_id="org-a")
    target = _seed_user(executor, name="Mike", role=Role.MECHANIC, organisation_id="org-a")
    deleter_b = CallerIdentity(user_id=str(uuid.uuid4()), organisation_id="org-b", role=Role.MANAGER)

    with pytest.raises(NotFoundError) as hidden:
        staff_user_service.delete_user(executor, deleter_b, target.user_id)
    with pytest.raises(NotFoundError) as missing:
        staff_user_service.delete_user(executor, deleter_b, str(uuid.uuid4()))

    assert hidden.value.message == missing.value.message == "User not found"
    assert hidden.value.details == missing.value.details
    remaining = client.get("/api/users", headers=_headers(manager_a)).json()
    assert [row["name"] for row in remaining] == ["Mike", "Sarah"]



def test_delete_missing_and_malformed_ids_share_not_found(client: TestClient, executor: TenantScopedExecutor) -> None:
    admin = _seed_user(executor, name="Alice", role=Role.ADMIN, organisation_id=None)

    missing = client.delete(f"/api/users/{uuid.uuid4()}", headers=_headers(admin))
    malformed = client.delete("/api/users/not-a-uuid", headers=_headers(admin))

    assert missing.status_code == malformed.status_code == 404
    assert missing.json()["message"] == malformed.json()["message"] == "User not found"


def test_cannot_delete_self(client: TestClient, executor: TenantScopedExecutor) -> None:
    admin = _seed_user(executor, name="Alice", role=Role.ADMIN, organisation_id=None)

    response = client.delete(f"/api/users/{admin.user_id}", headers=_headers(admin))

    assert response.status_code == 409


def test_counter_cannot_list_users(client: TestClient) -> None:
    counter = CallerIdentity(user_id="counter-a", organisation_id="org-a", role=Role.COUNTER)

    response = client.get("/api/users", headers=_headers(counter))

    assert response.status_code == 403
    assert response.json()["message"] == "Missing permission: user.read"
