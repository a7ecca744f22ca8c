from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import Select, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gardengear import audit
from gardengear.auth.passwords import hash_password
from gardengear.context import get_correlation_id
from gardengear.core.rbac import Role, can_grant_role, is_platform_admin
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.security.errors import ConflictError, ForbiddenError, NotFoundError
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.users.models import StaffUser
from gardengear.workshop.users.schemas import StaffUserCreate, StaffUserRead


logger = logging.getLogger("app.auth")


def _parse_user_id(raw: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(raw)
    except ValueError:
        return None


@dataclass(slots=True)
class StaffUserService:
    def list_users(
        self,
        executor: TenantScopedExecutor,
        identity: CallerIdentity,
        *,
        role: Role | None = None,
    ) -> list[StaffUserRead]:
        def work(session: Session) -> list[StaffUserRead]:
            stmt: Select[tuple[StaffUser]] = select(StaffUser)
            if role is not None:
                stmt = stmt.where(StaffUser.role == role.value)
            rows = session.scalars(stmt.order_by(StaffUser.name.asc())).all()
            return [StaffUserRead.model_validate(row) for row in rows]

        return executor.run_scoped(identity, work)

    def create_user(self, executor: TenantScopedExecutor, identity: CallerIdentity, dto: StaffUserCreate) -> StaffUserRead:
        if not can_grant_role(identity.role, dto.role):
            raise ForbiddenError(f"Cannot grant role: {dto.role.value}")

        if is_platform_admin(identity.role):
            organisation_id = dto.organisation_id or None
        else:
            if dto.organisation_id not in (None, "", identity.organisation_id):
                raise ForbiddenError("Cannot create users outside your organisation")
            organisation_id = identity.organisation_id

        password_hash = hash_password(dto.password)

        def work(session: Session) -> StaffUserRead:
            user = StaffUser(
                name=dto.name.strip(),
                email=dto.email.strip().lower(),
                password_hash=password_hash,
                role=dto.role.value,
                organisation_id=organisation_id,
            )
            session.add(user)
            session.flush()
            return StaffUserRead.model_validate(user)

        try:
            created = executor.run_scoped(identity, work)
        except IntegrityError as exc:
            raise ConflictError("Email already registered") from exc

        audit.record(
            actor_user_id=identity.user_id,
            organisation_id=organisation_id,
            entity_type="user",
            entity_id=str(created.id),
            action="user.created",
            details={"role": created.role.value},
            correlation_id=get_correlation_id(),
        )
        logger.info("auth.user_created", extra={"role": created.role.value, "organisation_id": organisation_id})
        return created

    def delete_user(self, executor: TenantScopedExecutor, identity: CallerIdentity, user_id_raw: str) -> None:
        """Delete a visible user; absent and hidden users both surface as NotFoundError."""

        user_id = _parse_user_id(user_id_raw)
        if user_id is None:
            raise NotFoundError("User not found")
        if str(user_id) == identity.user_id:
            raise ConflictError("Cannot delete your own account")

        def work(session: Session) -> int:
            result = session.execute(
                delete(StaffUser).where(StaffUser.id == user_id),
                execution_options={"synchronize_session": False},
            )
            if result.rowcount == 0:
                raise NotFoundError("User not found")
            return result.rowcount

        executor.run_scoped(identity, work)
        audit.record(
            actor_user_id=identity.user_id,
            organisation_id=identity.organisation_id,
            entity_type="user",
            entity_id=str(user_id),
            action="user.deleted",
            correlation_id=get_correlation_id(),
        )


staff_user_service = StaffUserService()
