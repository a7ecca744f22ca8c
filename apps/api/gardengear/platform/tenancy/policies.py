"""Tenant row policies.

On PostgreSQL the policies live in the database (see the Alembic migration
that calls :func:`postgres_row_policy_statements`) and read the two
transaction-local settings bound by :mod:`gardengear.platform.tenancy.scope`.

Engines without row-level security get the same predicate applied by
:func:`install_row_policy_emulation`, which reads the security context bound to
the session's connection. Application queries never add their own tenant
filters on top of either mechanism.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Index, String, Table, event, false, func, literal_column
from sqlalchemy.orm import Mapped, ORMExecuteState, Session, mapped_column, sessionmaker, with_loader_criteria

from gardengear.platform.security.errors import ForbiddenError
from gardengear.platform.tenancy.scope import (
    ORGANISATION_SETTING,
    PLATFORM_ADMIN_SETTING,
    current_security_context,
)


class TenantScopedMixin:
    organisation_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)


def tenant_unique_index(name: str, table: Table, *columns: str) -> Index:
    """Unique per organisation; rows without an organisation share one namespace.

    A plain UNIQUE constraint treats NULL organisation ids as distinct.
    """

    return Index(
        name,
        func.coalesce(table.c.organisation_id, literal_column("''")),
        *(table.c[column] for column in columns),
        unique=True,
    )


TENANT_SCOPED_TABLES = ("users", "customers", "products", "jobs", "job_history")

ROW_POLICY_PREDICATE = (
    f"(current_setting('{PLATFORM_ADMIN_SETTING}', true) = 'true' "
    f"OR organisation_id = nullif(current_setting('{ORGANISATION_SETTING}', true), ''))"
)


def postgres_row_policy_statements(table_name: str) -> list[str]:
    return [
        f"ALTER TABLE {table_name} ENABLE ROW LEVEL SECURITY",
        f"ALTER TABLE {table_name} FORCE ROW LEVEL SECURITY",
        (
            f"CREATE POLICY {table_name}_tenant_isolation ON {table_name} "
            f"USING {ROW_POLICY_PREDICATE} WITH CHECK {ROW_POLICY_PREDICATE}"
        ),
    ]


def postgres_drop_row_policy_statements(table_name: str) -> list[str]:
    return [
        f"DROP POLICY IF EXISTS {table_name}_tenant_isolation ON {table_name}",
        f"ALTER TABLE {table_name} NO FORCE ROW LEVEL SECURITY",
        f"ALTER TABLE {table_name} DISABLE ROW LEVEL SECURITY",
    ]


def _scope_of(session: Session) -> tuple[bool, str | None]:
    context = current_security_context(session.connection())
    if context is None:
        return False, None
    return context.is_platform_admin, context.organisation_id


def _apply_row_policy(execute_state: ORMExecuteState) -> None:
    if execute_state.is_column_load or execute_state.is_relationship_load:
        return

    is_admin, organisation_id = _scope_of(execute_state.session)
    if is_admin:
        return

    if execute_state.is_select:
        if organisation_id is None:
            criteria = with_loader_criteria(TenantScopedMixin, lambda cls: false(), include_aliases=True)
        else:
            criteria = with_loader_criteria(
                TenantScopedMixin,
                lambda cls: cls.organisation_id == organisation_id,
                include_aliases=True,
            )
        execute_state.statement = execute_state.statement.options(criteria)
        return

    if execute_state.is_update or execute_state.is_delete:
        table = execute_state.statement.table
        if "organisation_id" not in table.c:
            return
        predicate = false() if organisation_id is None else table.c.organisation_id == organisation_id
        execute_state.statement = execute_state.statement.where(predicate)


def _check_new_rows(session: Session, flush_context: Any, instances: Any) -> None:
    is_admin, organisation_id = _scope_of(session)
    if is_admin:
        return
    for instance in list(session.new) + list(session.dirty):
        if not isinstance(instance, TenantScopedMixin):
            continue
        if organisation_id is None or instance.organisation_id != organisation_id:
            raise ForbiddenError("Row violates tenant policy")


def install_row_policy_emulation(session_factory: sessionmaker[Session]) -> None:
    event.listen(session_factory, "do_orm_execute", _apply_row_policy)
    event.listen(session_factory, "before_flush", _check_new_rows)
