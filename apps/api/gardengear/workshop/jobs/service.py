from __future__ import annotations

import logging
import secrets
import string
import uuid
from dataclasses import dataclass

from sqlalchemy import Select, false, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from gardengear import audit
from gardengear.context import get_correlation_id
from gardengear.core.rbac import Action, Role, can_perform
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.security.errors import ConflictError, NotFoundError
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.customers.models import Customer
from gardengear.workshop.jobs.models import Job, JobHistoryEntry
from gardengear.workshop.jobs.schemas import JobAssign, JobCreate, JobRead, JobStatus, JobStatusUpdate
from gardengear.workshop.users.models import StaffUser


logger = logging.getLogger("app.jobs")

JOB_CODE_ALPHABET = string.digits + string.ascii_uppercase
JOB_CODE_LENGTH = 4
JOB_CODE_ATTEMPTS = 8
LIST_LIMIT = 100


def generate_job_code() -> str:
    return "".join(secrets.choice(JOB_CODE_ALPHABET) for _ in range(JOB_CODE_LENGTH))


def _visible_jobs(identity: CallerIdentity) -> Select[tuple[Job]]:
    """Jobs the caller may see on top of tenant isolation: all of them, or only their own assignments."""

    stmt: Select[tuple[Job]] = select(Job)
    if can_perform(identity.role, Action.JOB_READ_ALL):
        return stmt
    try:
        mechanic_id = uuid.UUID(identity.user_id)
    except ValueError:
        return stmt.where(false())
    return stmt.where(Job.assigned_mechanic_id == mechanic_id)


def _actor_name(session: Session, identity: CallerIdentity) -> str:
    try:
        user_id = uuid.UUID(identity.user_id)
    except ValueError:
        return identity.user_id
    user = session.scalar(select(StaffUser).where(StaffUser.id == user_id))
    return user.name if user is not None else identity.user_id


def _append_history(session: Session, job: Job, identity: CallerIdentity, action: str) -> None:
    job.history.append(
        JobHistoryEntry(
            organisation_id=job.organisation_id,
            action=action,
            user_id=identity.user_id,
            user_name=_actor_name(session, identity),
        )
    )


def _load_job(session: Session, identity: CallerIdentity, code: str) -> Job:
    job = session.scalar(_visible_jobs(identity).where(Job.code == code.upper()))
    if job is None:
        raise NotFoundError("Job not found")
    return job


@dataclass(slots=True)
class JobService:
    def create(self, executor: TenantScopedExecutor, identity: CallerIdentity, dto: JobCreate) -> JobRead:
        def work(session: Session) -> JobRead:
            if dto.customer_id is not None:
                customer = session.scalar(select(Customer).where(Customer.id == dto.customer_id))
                if customer is None:
                    raise NotFoundError("Customer not found")

            job = Job(
                organisation_id=identity.organisation_id,
                code=self._allocate_code(session),
                status=JobStatus.INTAKE.value,
                customer_id=dto.customer_id,
                machine_make=dto.machine.make,
                machine_model=dto.machine.model,
                machine_serial_number=dto.machine.serial_number,
                machine_type=dto.machine.type,
                condition_notes=dto.machine.condition_notes,
                known_issues=dto.service.known_issues,
                customer_requirements=dto.service.customer_requirements,
                suggested_repair_plan=dto.service.suggested_repair_plan,
                service_types=list(dto.service.service_types),
                booking_date=dto.service.booking_date,
                history=[],
            )
            session.add(job)
            _append_history(session, job, identity, "Job Created")
            session.flush()
            return JobRead.model_validate(job)

        try:
            return executor.run_scoped(identity, work)
        except IntegrityError as exc:
            raise ConflictError("Job code already in use") from exc

    def list_jobs(
        self,
        executor: TenantScopedExecutor,
        identity: CallerIdentity,
        *,
        query: str | None = None,
        status: JobStatus | None = None,
    ) -> list[JobRead]:
        def work(session: Session) -> list[JobRead]:
            stmt = _visible_jobs(identity).options(selectinload(Job.history))
            term = (query or "").strip()
            if term:
                pattern = f"%{term}%"
                stmt = stmt.where(
                    or_(
                        Job.code.ilike(pattern),
                        Job.machine_make.ilike(pattern),
                        Job.machine_model.ilike(pattern),
                        Job.machine_serial_number.ilike(pattern),
                    )
                )
            if status is not None:
                stmt = stmt.where(Job.status == status.value)
            rows = session.scalars(stmt.order_by(Job.created_at.desc()).limit(LIST_LIMIT)).all()
            return [JobRead.model_validate(row) for row in rows]

        return executor.run_scoped(identity, work)

    def get(self, executor: TenantScopedExecutor, identity: CallerIdentity, code: str) -> JobRead:
        def work(session: Session) -> JobRead:
            return JobRead.model_validate(_load_job(session, identity, code))

        return executor.run_scoped(identity, work)

    def update_status(
        self,
        executor: TenantScopedExecutor,
        identity: CallerIdentity,
        code: str,
        dto: JobStatusUpdate,
    ) -> JobRead:
        def work(session: Session) -> JobRead:
            job = _load_job(session, identity, code)
            job.status = dto.status.value
            _append_history(session, job, identity, f"Status updated to {dto.status.value}")
            session.flush()
            return JobRead.model_validate(job)

        return executor.run_scoped(identity, work)

    def assign(self, executor: TenantScopedExecutor, identity: CallerIdentity, code: str, dto: JobAssign) -> JobRead:
        def work(session: Session) -> JobRead:
            job = _load_job(session, identity, code)
            if dto.mechanic_id is None:
                job.assigned_mechanic_id = None
                action = "Mechanic unassigned"
            else:
                mechanic = session.scalar(select(StaffUser).where(StaffUser.id == dto.mechanic_id))
                if mechanic is None or mechanic.role != Role.MECHANIC.value:
                    raise NotFoundError("Mechanic not found")
                job.assigned_mechanic_id = mechanic.id
                action = f"Assigned to mechanic: {mechanic.name}"
            _append_history(session, job, identity, action)
            session.flush()
            return JobRead.model_validate(job)

        assigned = executor.run_scoped(identity, work)
        audit.record(
            actor_user_id=identity.user_id,
            organisation_id=assigned.organisation_id,
            entity_type="job",
            entity_id=assigned.code,
            action="job.assigned",
            details={"mechanic_id": str(assigned.assigned_mechanic_id) if assigned.assigned_mechanic_id else None},
            correlation_id=get_correlation_id(),
        )
        return assigned

    @staticmethod
    def _allocate_code(session: Session) -> str:
        for _ in range(JOB_CODE_ATTEMPTS):
            code = generate_job_code()
            if session.scalar(select(Job).where(Job.code == code)) is None:
                return code
        logger.warning("jobs.code_exhausted", extra={"outcome": "conflict"})
        raise ConflictError("Could not allocate a job code")


job_service = JobService()
