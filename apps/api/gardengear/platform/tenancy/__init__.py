from gardengear.platform.tenancy.executor import TenantScopedExecutor
from gardengear.platform.tenancy.policies import (
    ROW_POLICY_PREDICATE,
    TENANT_SCOPED_TABLES,
    TenantScopedMixin,
    install_row_policy_emulation,
    postgres_drop_row_policy_statements,
    postgres_row_policy_statements,
)
from gardengear.platform.tenancy.scope import (
    ORGANISATION_SETTING,
    PLATFORM_ADMIN_SETTING,
    bind_security_context,
    clear_security_context,
    current_security_context,
)

__all__ = [
    "TenantScopedExecutor",
    "TenantScopedMixin",
    "TENANT_SCOPED_TABLES",
    "ROW_POLICY_PREDICATE",
    "install_row_policy_emulation",
    "postgres_row_policy_statements",
    "postgres_drop_row_policy_statements",
    "ORGANISATION_SETTING",
    "PLATFORM_ADMIN_SETTING",
    "bind_security_context",
    "clear_security_context",
    "current_security_context",
]
