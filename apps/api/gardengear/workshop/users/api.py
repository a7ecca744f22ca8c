from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from gardengear.core.auth import require_action
from gardengear.core.database import get_executor
from gardengear.core.rbac import Action, Role
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.users.schemas import StaffUserRead, UserDeletedRead
from gardengear.workshop.users.service import staff_user_service


router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=list[StaffUserRead])
def list_users(
    role: Role | None = Query(default=None),
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.USER_READ)),
) -> list[StaffUserRead]:
    return staff_user_service.list_users(executor, identity, role=role)


@router.delete("/{user_id}", response_model=UserDeletedRead)
def delete_user(
    user_id: str,
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.USER_DELETE)),
) -> UserDeletedRead:
    staff_user_service.delete_user(executor, identity, user_id)
    return UserDeletedRead()
