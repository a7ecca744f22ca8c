from __future__ import annotations

from dataclasses import dataclass

from gardengear.core.rbac import Role, is_platform_admin


@dataclass(frozen=True, slots=True)
class CallerIdentity:
    """Verified caller, rebuilt from the bearer token on every request."""

    user_id: str
    organisation_id: str | None
    role: Role


@dataclass(frozen=True, slots=True)
class SecurityContext:
    """Tenant scope bound to one database transaction."""

    organisation_id: str | None
    is_platform_admin: bool

    @classmethod
    def from_identity(cls, identity: CallerIdentity) -> SecurityContext:
        return cls(
            organisation_id=identity.organisation_id or None,
            is_platform_admin=is_platform_admin(identity.role),
        )

    @property
    def platform_admin_flag(self) -> str:
        return "true" if self.is_platform_admin else "false"


# Credential lookups happen before any caller identity exists; they run under
# this dedicated platform-scoped identity instead of bypassing the executor.
AUTHENTICATION_IDENTITY = CallerIdentity(user_id="system:authentication", organisation_id=None, role=Role.OWNER)
