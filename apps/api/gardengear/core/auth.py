from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends
from jose import JWTError, jwt
from starlette.requests import Request

from gardengear.context import set_caller
from gardengear.core.config import get_settings
from gardengear.core.rbac import Action, ensure_allowed, parse_role
from gardengear.metrics import observe_auth_failure
from gardengear.platform.security.context import CallerIdentity
from gardengear.platform.security.errors import ForbiddenError, UnauthenticatedError


logger = logging.getLogger("app.auth")

_BEARER_PREFIX = "Bearer "


def extract_bearer_token(header: str | None) -> str:
    if not header:
        raise UnauthenticatedError("Access token required")
    # Scheme match is case-sensitive.
    if not header.startswith(_BEARER_PREFIX):
        raise UnauthenticatedError("Invalid authorization header format")
    token = header[len(_BEARER_PREFIX) :].strip()
    if not token:
        raise UnauthenticatedError("Access token required")
    return token


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require_exp": True},
        )
    except JWTError as exc:
        raise ForbiddenError("Invalid or expired token") from exc


def identity_from_claims(claims: dict[str, Any]) -> CallerIdentity:
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise UnauthenticatedError("Token subject missing")

    organisation = claims.get("org")
    organisation_id = str(organisation) if organisation not in (None, "") else None

    role = parse_role(claims.get("role"))
    if role is None:
        raise ForbiddenError("Unrecognized role")

    return CallerIdentity(user_id=subject, organisation_id=organisation_id, role=role)


def verify_authorization_header(header: str | None) -> CallerIdentity:
    """Resolve an ``Authorization`` header value into a verified CallerIdentity.

    Raises UnauthenticatedError when no usable credential is present and
    ForbiddenError when the credential is rejected (signature, expiry, role).
    """

    return identity_from_claims(decode_token(extract_bearer_token(header)))


def issue_token(identity: CallerIdentity, *, now: datetime | None = None) -> str:
    settings = get_settings()
    issued_at = now or datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": identity.user_id,
        "role": identity.role.value,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.jwt_expiry_hours),
    }
    if identity.organisation_id is not None:
        claims["org"] = identity.organisation_id
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


async def get_caller_identity(request: Request) -> CallerIdentity:
    try:
        identity = verify_authorization_header(request.headers.get("authorization"))
    except (UnauthenticatedError, ForbiddenError) as exc:
        observe_auth_failure(exc.kind)
        logger.warning("auth.rejected", extra={"error_kind": exc.kind, "error": exc.message})
        raise

    context = getattr(request.state, "context", None)
    if context is not None:
        context.user_id = identity.user_id
        context.organisation_id = identity.organisation_id
        context.role = identity.role.value
    set_caller(identity.user_id, identity.organisation_id, identity.role.value)
    return identity


def require_action(*actions: Action) -> Callable[..., Any]:
    async def checker(identity: CallerIdentity = Depends(get_caller_identity)) -> CallerIdentity:
        ensure_allowed(identity, *actions)
        return identity

    return checker
