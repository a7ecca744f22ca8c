from __future__ import annotations

import re
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from gardengear import audit
from gardengear.core.auth import issue_token
from gardengear.core.config import get_settings
from gardengear.core.database import Base, get_executor
from gardengear.core.rbac import Role
from gardengear.main import app
from gardengear.middleware.rate_limit import reset_rate_limiter
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.jobs import service as job_service_module
from gardengear.workshop.users.models import StaffUser


PLATFORM = CallerIdentity(user_id="owner-1", organisation_id=None, role=Role.OWNER)


@pytest.fixture(autouse=True)
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("RATE_LIMIT_DISABLED", "true")
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
            password_hash="pbkdf2:sha256:1$AA==$00",
            role=role.value,
            organisation_id=organisation_id,
        )
        session.add(user)
        session.flush()
        return str(user.id)

    return CallerIdentity(user_id=executor.run_scoped(PLATFORM, work), organisation_id=organisation_id, role=role)


@pytest.fixture()
def staff(executor: TenantScopedExecutor) -> dict[str, CallerIdentity]:
    return {
        "counter": _seed_user(executor, name="Reception", role=Role.COUNTER, organisation_id="org-a"),
        "manager": _seed_user(executor, name="Sarah", role=Role.MANAGER, organisation_id="org-a"),
        "mike": _seed_user(executor, name="Mike", role=Role.MECHANIC, organisation_id="org-a"),
        "dave": _seed_user(executor, name="Dave", role=Role.MECHANIC, organisation_id="org-a"),
        "rival_mechanic": _seed_user(executor, name="Rival", role=Role.MECHANIC, organisation_id="org-b"),
        "rival_counter": _seed_user(executor, name="Other", role=Role.COUNTER, organisation_id="org-b"),
    }


def _headers(identity: CallerIdentity) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(identity)}"}


def _create_job(client: TestClient, identity: CallerIdentity, make: str = "Honda") -> dict:
    response = client.post(
        "/api/jobs",
        json={
            "machine": {"make": make, "model": "HRX 476", "serial_number": "SN-1", "type": "Lawnmower"},
            "service": {"known_issues": "Won't start", "service_types": ["Service", "Repair"]},
        },
        headers=_headers(identity),
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_create_job_starts_in_intake_with_history(client: TestClient, staff: dict[str, CallerIdentity]) -> None:
    job = _create_job(client, staff["counter"])

    assert re.fullmatch(r"[0-9A-Z]{4}", job["code"])
    assert job["status"] == "Intake"
    assert job["organisation_id"] == "org-a"
    assert job["service_types"] == ["Service", "Repair"]
    assert [(entry["action"], entry["user_name"]) for entry in job["history"]] == [("Job Created", "Reception")]


def test_create_job_for_hidden_customer_is_not_found(client: TestClient, staff: dict[str, CallerIdentity]) -> None:
    customer = client.post(
        "/api/customers",
        json={"name": "Alice", "account_number": "AL001"},
        headers=_headers(staff["rival_counter"]),
    ).json()

    response = client.post(
        "/api/jobs",
        json={"customer_id": customer["id"], "machine": {"make": "Stihl", "type": "Chainsaw"}},
        headers=_headers(staff["counter"]),
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Customer not found"


def test_job_codes_retry_on_collision(
    client: TestClient, staff: dict[str, CallerIdentity], monkeypatch: pytest.MonkeyPatch
) -> None:
    codes = iter(["AAAA", "AAAA", "BBBB"])
    monkeypatch.setattr(job_service_module, "generate_job_code", lambda: next(codes))

    first = _create_job(client, staff["counter"])
    second = _create_job(client, staff["counter"])

    assert (first["code"], second["code"]) == ("AAAA", "BBBB")


def test_jobs_are_tenant_scoped(client: TestClient, staff: dict[str, CallerIdentity]) -> None:
    job = _create_job(client, staff["counter"])

    listed = client.get("/api/jobs", headers=_headers(staff["rival_counter"]))
    fetched = client.get(f"/api/jobs/{job['code']}", headers=_headers(staff["rival_counter"]))

    assert listed.json() == []
    assert fetched.status_code == 404


def test_mechanic_sees_only_assigned_jobs(client: TestClient, staff: dict[str, CallerIdentity]) -> None:
    mine = _create_job(client, staff["counter"], make="Honda")
    other = _create_job(client, staff["counter"], make="Stihl")

    assign = client.post(
        f"/api/jobs/{mine['code']}/assign",
        json={"mechanic_id": staff["mike"].user_id},
        headers=_headers(staff["manager"]),
    )
    assert assign.status_code == 200

    listed = client.get("/api/jobs", headers=_headers(staff["mike"]))
    hidden = client.get(f"/api/jobs/{other['code']}", headers=_headers(staff["mike"]))
    dave_view = client.get("/api/jobs", headers=_headers(staff["dave"]))

    assert [job["code"] for job in listed.json()] == [mine["code"]]
    assert hidden.status_code == 404
    assert dave_view.json() == []


def test_assignment_history_and_audit(client: TestClient, staff: dict[str, CallerIdentity]) -> None:
    job = _create_job(client, staff["counter"])

    assigned = client.post(
        f"/api/jobs/{job['code']}/assign",
        json={"mechanic_id": staff["mike"].user_id},
        headers=_headers(staff["manager"]),
    ).json()
    unassigned = client.post(
        f"/api/jobs/{job['code']}/assign",
        json={"mechanic_id": None},
        headers=_headers(staff["manager"]),
    ).json()

    assert assigned["assigned_mechanic_id"] == staff["mike"].user_id
    assert unassigned["assigned_mechanic_id"] is None
    assert [entry["action"] for entry in unassigned["history"]] == [
        "Job Created",
        "Assigned to mechanic: Mike",
        "Mechanic unassigned",
    ]
    assert [entry["action"] for entry in audit.audit_entries] == ["job.assigned", "job.assigned"]


def test_only_managers_assign(client: TestClient, staff: dict[str, CallerIdentity]) -> None:
    job = _create_job(client, staff["counter"])

    response = client.post(
        f"/api/jobs/{job['code']}/assign",
        json={"mechanic_id": staff["mike"].user_id},
        headers=_headers(staff["counter"]),
    )

    assert response.status_code == 403


@pytest.mark.parametrize("target", ["rival_mechanic", "counter"])
def test_assignee_must_be_visible_mechanic(client: TestClient, staff: dict[str, CallerIdentity], target: str) -> None:
    job = _create_job(client, staff["counter"])

    response = client.post(
        f"/api/jobs/{job['code']}/assign",
        json={"mechanic_id": staff[target].user_id},
        headers=_headers(staff["manager"]),
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Mechanic not found"


def test_status_updates_append_history(client: TestClient, staff: dict[str, CallerIdentity]) -> None:
    job = _create_job(client, staff["counter"])
    client.post(
        f"/api/jobs/{job['code']}/assign",
        json={"mechanic_id": staff["mike"].user_id},
        headers=_headers(staff["manager"]),
    )

    response = client.post(
        f"/api/jobs/{job['code'].lower()}/status",
        json={"status": "In Progress"},
        headers=_headers(staff["mike"]),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "In Progress"
    assert body["history"][-1]["action"] == "Status updated to In Progress"
    assert body["history"][-1]["user_name"] == "Mike"


def test_mechanic_cannot_update_unassigned_job(client: TestClient, staff: dict[str, CallerIdentity]) -> None:
    job = _create_job(client, staff["counter"])

    response = client.post(
        f"/api/jobs/{job['code']}/status",
        json={"status": "Completed"},
        headers=_headers(staff["dave"]),
    )

    assert response.status_code == 404


def test_list_filters_by_status_and_query(client: TestClient, staff: dict[str, CallerIdentity]) -> None:
    honda = _create_job(client, staff["counter"], make="Honda")
    _create_job(client, staff["counter"], make="Stihl")
    client.post(f"/api/jobs/{honda['code']}/status", json={"status": "Diagnosis"}, headers=_headers(staff["counter"]))

    by_status = client.get("/api/jobs", params={"status": "Diagnosis"}, headers=_headers(staff["counter"])).json()
    by_query = client.get("/api/jobs", params={"q": "stihl"}, headers=_headers(staff["counter"])).json()

    assert [job["code"] for job in by_status] == [honda["code"]]
    assert [job["machine_make"] for job in by_query] == ["Stihl"]


def test_invalid_status_is_rejected(client: TestClient, staff: dict[str, CallerIdentity]) -> None:
    job = _create_job(client, staff["counter"])

    response = client.post(
        f"/api/jobs/{job['code']}/status",
        json={"status": "Lost"},
        headers=_headers(staff["counter"]),
    )

    assert response.status_code == 422
