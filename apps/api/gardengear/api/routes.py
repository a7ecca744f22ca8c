from fastapi import APIRouter, Depends
from fastapi.responses import Response

from gardengear.auth.api import router as auth_router
from gardengear.core.auth import get_caller_identity, require_action
from gardengear.core.config import get_settings
from gardengear.core.rbac import ROLE_PERMISSIONS, Action, is_platform_admin
from gardengear.metrics import generate_metrics_payload, metrics_content_type
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.security.errors import NotFoundError
from gardengear.workshop.customers.api import router as customers_router
from gardengear.workshop.jobs.api import router as jobs_router
from gardengear.workshop.products.api import router as products_router
from gardengear.workshop.users.api import router as users_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(customers_router)
router.include_router(products_router)
router.include_router(users_router)
router.include_router(jobs_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@router.get("/me", tags=["auth"])
async def me(identity: CallerIdentity = Depends(get_caller_identity)) -> dict[str, object]:
    return {
        "sub": identity.user_id,
        "org": identity.organisation_id,
        "role": identity.role.value,
        "is_platform_admin": is_platform_admin(identity.role),
        "permissions": sorted(action.value for action, allowed in ROLE_PERMISSIONS[identity.role].items() if allowed),
    }


@router.get("/metrics", tags=["system"])
def metrics(identity: CallerIdentity = Depends(require_action(Action.SYSTEM_METRICS_READ))) -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise NotFoundError("not found")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
