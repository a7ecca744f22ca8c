from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Connection, Dialect

from gardengear.platform.security.context import SecurityContext


logger = logging.getLogger("app.tenancy")

ORGANISATION_SETTING = "app.current_user_org_id"
PLATFORM_ADMIN_SETTING = "app.is_platform_admin"

_INFO_KEY = "gardengear.security_context"

# is_local=true: PostgreSQL discards the value when the transaction ends.
_SET_LOCAL_CONFIG = text("SELECT set_config(:name, CAST(:value AS text), true)")


def supports_row_security(dialect: Dialect) -> bool:
    return dialect.name == "postgresql"


def bind_security_context(connection: Connection, context: SecurityContext) -> None:
    """Bind ``context`` to the transaction currently open on ``connection``.

    ``connection.info`` travels with the DBAPI connection through the pool,
    so every bind must be paired with :func:`clear_security_context` before
    the connection is released.
    """

    if not connection.in_transaction():
        raise RuntimeError("security context can only be bound inside a transaction")

    stale = connection.info.get(_INFO_KEY)
    if stale is not None:
        logger.error("tenancy.stale_context", extra={"organisation_id": stale.organisation_id})

    if supports_row_security(connection.dialect):
        connection.execute(_SET_LOCAL_CONFIG, {"name": ORGANISATION_SETTING, "value": context.organisation_id})
        connection.execute(_SET_LOCAL_CONFIG, {"name": PLATFORM_ADMIN_SETTING, "value": context.platform_admin_flag})

    connection.info[_INFO_KEY] = context


def current_security_context(connection: Connection) -> SecurityContext | None:
    return connection.info.get(_INFO_KEY)


def clear_security_context(connection: Connection) -> None:
    connection.info.pop(_INFO_KEY, None)
