from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from gardengear.core.auth import require_action
from gardengear.core.database import get_executor
from gardengear.core.rbac import Action
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.customers.schemas import CustomerCreate, CustomerRead, CustomerUpdate
from gardengear.workshop.customers.service import customer_service


router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.get("", response_model=list[CustomerRead])
def search_customers(
    q: str | None = Query(default=None, max_length=255),
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.CUSTOMER_READ)),
) -> list[CustomerRead]:
    return customer_service.search(executor, identity, q)


@router.get("/{id_or_account}", response_model=CustomerRead)
def get_customer(
    id_or_account: str,
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.CUSTOMER_READ)),
) -> CustomerRead:
    return customer_service.get(executor, identity, id_or_account)


@router.post("", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreate,
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.CUSTOMER_CREATE)),
) -> CustomerRead:
    return customer_service.create(executor, identity, payload)


@router.put("/{customer_id}", response_model=CustomerRead)
def update_customer(
    customer_id: uuid.UUID,
    payload: CustomerUpdate,
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.CUSTOMER_UPDATE)),
) -> CustomerRead:
    return customer_service.update(executor, identity, customer_id, payload)
