from __future__ import annotations

from enum import Enum

from fastapi import APIRouter, Depends, status

from gardengear.auth.schemas import LoginRequest, TokenResponse
from gardengear.auth.service import auth_service
from gardengear.core.auth import require_action
from gardengear.core.database import get_executor
from gardengear.core.rbac import Action
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.security.errors import SsoNotImplementedError
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.users.schemas import StaffUserCreate


router = APIRouter(prefix="/auth", tags=["auth"])


class SsoProvider(str, Enum):
    GOOGLE = "google"
    MICROSOFT = "microsoft"
    APPLE = "apple"


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    executor: TenantScopedExecutor = Depends(get_executor),
) -> TokenResponse:
    return auth_service.login(executor, payload)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: StaffUserCreate,
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.USER_CREATE)),
) -> TokenResponse:
    return auth_service.register(executor, identity, payload)


@router.post("/{provider}", status_code=status.HTTP_501_NOT_IMPLEMENTED)
def single_sign_on(provider: SsoProvider) -> None:
    raise SsoNotImplementedError(f"SSO via {provider.value} is not implemented")
