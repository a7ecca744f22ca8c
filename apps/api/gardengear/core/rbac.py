from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from gardengear.platform.security.errors import ForbiddenError

if TYPE_CHECKING:
    from gardengear.platform.security.context import CallerIdentity


class Role(str, Enum):
    COUNTER = "Counter"
    MANAGER = "Workshop Manager"
    MECHANIC = "Mechanic"
    ADMIN = "Admin"
    OWNER = "Owner"


class Action(str, Enum):
    CUSTOMER_READ = "customer.read"
    CUSTOMER_CREATE = "customer.create"
    CUSTOMER_UPDATE = "customer.update"
    PRODUCT_READ = "product.read"
    PRODUCT_MANAGE = "product.manage"
    JOB_CREATE = "job.create"
    JOB_READ_ALL = "job.read_all"
    JOB_READ_ASSIGNED = "job.read_assigned"
    JOB_UPDATE_STATUS = "job.update_status"
    JOB_ASSIGN = "job.assign"
    USER_READ = "user.read"
    USER_CREATE = "user.create"
    USER_DELETE = "user.delete"
    DASHBOARD_CLIENTS = "dashboard.clients"
    SYSTEM_CONFIGURE = "system.configure"
    SYSTEM_METRICS_READ = "system.metrics.read"


PLATFORM_ADMIN_ROLES = frozenset({Role.ADMIN, Role.OWNER})

_C, _MG, _ME, _A, _O = Role.COUNTER, Role.MANAGER, Role.MECHANIC, Role.ADMIN, Role.OWNER

# Every (role, action) pair is listed; a role absent from a row is denied.
_ALLOWED_ROLES: dict[Action, frozenset[Role]] = {
    Action.CUSTOMER_READ: frozenset({_C, _ME, _MG, _A, _O}),
    Action.CUSTOMER_CREATE: frozenset({_C, _MG, _A, _O}),
    Action.CUSTOMER_UPDATE: frozenset({_C, _MG, _A, _O}),
    Action.PRODUCT_READ: frozenset({_C, _ME, _MG, _A, _O}),
    Action.PRODUCT_MANAGE: frozenset({_MG, _A, _O}),
    Action.JOB_CREATE: frozenset({_C, _MG, _A, _O}),
    Action.JOB_READ_ALL: frozenset({_C, _MG, _A, _O}),
    Action.JOB_READ_ASSIGNED: frozenset({_ME}),
    Action.JOB_UPDATE_STATUS: frozenset({_C, _ME, _MG, _A, _O}),
    Action.JOB_ASSIGN: frozenset({_MG}),
    Action.USER_READ: frozenset({_MG, _A, _O}),
    Action.USER_CREATE: frozenset({_MG, _A, _O}),
    Action.USER_DELETE: frozenset({_A, _O}),
    Action.DASHBOARD_CLIENTS: frozenset({_MG, _A, _O}),
    Action.SYSTEM_CONFIGURE: frozenset({_A, _O}),
    Action.SYSTEM_METRICS_READ: frozenset({_A, _O}),
}

ROLE_PERMISSIONS: dict[Role, dict[Action, bool]] = {
    role: {action: role in _ALLOWED_ROLES[action] for action in Action} for role in Role
}

_GRANTABLE_ROLES: dict[Role, frozenset[Role]] = {
    Role.COUNTER: frozenset(),
    Role.MECHANIC: frozenset(),
    Role.MANAGER: frozenset({Role.COUNTER, Role.MECHANIC}),
    Role.ADMIN: frozenset(Role),
    Role.OWNER: frozenset(Role),
}


def parse_role(value: object) -> Role | None:
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def is_platform_admin(role: Role) -> bool:
    return role in PLATFORM_ADMIN_ROLES


def can_perform(role: Role, action: Action) -> bool:
    return ROLE_PERMISSIONS[role][action]


def can_grant_role(actor: Role, target: Role) -> bool:
    """Whether ``actor`` may create or promote a staff account to ``target``."""

    return target in _GRANTABLE_ROLES[actor]


def ensure_allowed(identity: CallerIdentity, *actions: Action) -> None:
    """Raise ForbiddenError unless the identity holds at least one of ``actions``."""

    if not any(can_perform(identity.role, action) for action in actions):
        wanted = " or ".join(action.value for action in actions)
        raise ForbiddenError(f"Missing permission: {wanted}")
