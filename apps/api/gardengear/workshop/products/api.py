from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from gardengear.core.auth import require_action
from gardengear.core.database import get_executor
from gardengear.core.rbac import Action
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.workshop.products.schemas import ProductCreate, ProductRead
from gardengear.workshop.products.service import product_service


router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=list[ProductRead])
def search_products(
    q: str | None = Query(default=None, max_length=255),
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.PRODUCT_READ)),
) -> list[ProductRead]:
    return product_service.search(executor, identity, q)


@router.get("/{code}", response_model=ProductRead)
def get_product(
    code: str,
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.PRODUCT_READ)),
) -> ProductRead:
    return product_service.get_by_code(executor, identity, code)


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    executor: TenantScopedExecutor = Depends(get_executor),
    identity: CallerIdentity = Depends(require_action(Action.PRODUCT_MANAGE)),
) -> ProductRead:
    return product_service.create(executor, identity, payload)
