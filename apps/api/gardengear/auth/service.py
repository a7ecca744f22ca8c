from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NoReturn

from sqlalchemy import select
from sqlalchemy.orm import Session

from gardengear import audit
from gardengear.auth.passwords import burn_password_check, verify_password
from gardengear.auth.schemas import LoginRequest, TokenResponse
from gardengear.context import get_correlation_id
from gardengear.core.auth import issue_token
from gardengear.core.rbac import parse_role
from gardengear.metrics import observe_auth_failure
from gardengear.platform.security.context import AUTHENTICATION_IDENTITY, CallerIdentity
from gardengear.platform.security.errors import InvalidCredentialsError
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.users.models import StaffUser
from gardengear.workshop.users.schemas import StaffUserCreate, StaffUserRead
from gardengear.workshop.users.service import staff_user_service


logger = logging.getLogger("app.auth")


@dataclass(slots=True)
class AuthService:
    def login(self, executor: TenantScopedExecutor, dto: LoginRequest) -> TokenResponse:
        email = dto.email.strip().lower()

        def lookup(session: Session) -> tuple[StaffUserRead, str] | None:
            row = session.scalar(select(StaffUser).where(StaffUser.email == email))
            if row is None:
                return None
            return StaffUserRead.model_validate(row), row.password_hash

        found = executor.run_scoped(AUTHENTICATION_IDENTITY, lookup)
        if found is None:
            burn_password_check(dto.password)
            self._reject(reason="unknown_email")

        user, password_hash = found
        if not verify_password(dto.password, password_hash):
            self._reject(reason="wrong_password", user_id=str(user.id), organisation_id=user.organisation_id)

        role = parse_role(user.role)
        if role is None:
            self._reject(reason="unrecognized_role", user_id=str(user.id), organisation_id=user.organisation_id)

        identity = CallerIdentity(user_id=str(user.id), organisation_id=user.organisation_id, role=role)
        audit.record(
            actor_user_id=identity.user_id,
            organisation_id=identity.organisation_id,
            entity_type="session",
            entity_id=identity.user_id,
            action="auth.login_succeeded",
            correlation_id=get_correlation_id(),
        )
        logger.info("auth.login", extra={"user_id": identity.user_id, "organisation_id": identity.organisation_id})
        return TokenResponse(token=issue_token(identity), user=user)

    def register(self, executor: TenantScopedExecutor, actor: CallerIdentity, dto: StaffUserCreate) -> TokenResponse:
        user = staff_user_service.create_user(executor, actor, dto)
        identity = CallerIdentity(user_id=str(user.id), organisation_id=user.organisation_id, role=user.role)
        return TokenResponse(token=issue_token(identity), user=user)

    @staticmethod
    def _reject(*, reason: str, user_id: str | None = None, organisation_id: str | None = None) -> NoReturn:
        observe_auth_failure(InvalidCredentialsError.__name__)
        audit.record(
            actor_user_id=user_id or "anonymous",
            organisation_id=organisation_id,
            entity_type="session",
            entity_id=user_id or "",
            action="auth.login_failed",
            details={"reason": reason},
            correlation_id=get_correlation_id(),
        )
        logger.warning("auth.login_failed", extra={"error_kind": reason})
        raise InvalidCredentialsError()


auth_service = AuthService()
