from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from gardengear.core.auth import require_action
from gardengear.core.database import get_executor
from gardengear.core.rbac import Action
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.jobs.schemas import JobAssign, JobCreate, JobRead, JobStatus, JobStatusUpdate
from gardengear.workshop.jobs.service import job_service


router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.post("", response_model=JobRead, status_code=status.HTTP_201_CREATED)
def create_job(
    payload: JobCreate,
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.JOB_CREATE)),
) -> JobRead:
    return job_service.create(executor, identity, payload)


@router.get("", response_model=list[JobRead])
def list_jobs(
    q: str | None = Query(default=None, max_length=255),
    job_status: JobStatus | None = Query(default=None, alias="status"),
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.JOB_READ_ALL, Action.JOB_READ_ASSIGNED)),
) -> list[JobRead]:
    return job_service.list_jobs(executor, identity, query=q, status=job_status)


@router.get("/{code}", response_model=JobRead)
def get_job(
    code: str,
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.JOB_READ_ALL, Action.JOB_READ_ASSIGNED)),
) -> JobRead:
    return job_service.get(executor, identity, code)


@router.post("/{code}/status", response_model=JobRead)
def update_job_status(
    code: str,
    payload: JobStatusUpdate,
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.JOB_UPDATE_STATUS)),
) -> JobRead:
    return job_service.update_status(executor, identity, code, payload)


@router.post("/{code}/assign", response_model=JobRead)
def assign_job(
    code: str,
    payload: JobAssign,
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.JOB_ASSIGN)),
) -> JobRead:
    return job_service.assign(executor, identity, code, payload)
