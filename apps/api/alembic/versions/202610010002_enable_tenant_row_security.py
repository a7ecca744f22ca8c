"""enable tenant row security

Revision ID: 202610010002
Revises: 202610010001
Create Date: 2026-10-01 00:02:00
"""

from collections.abc import Sequence

from alembic import op

from gardengear.platform.tenancy.policies import (
    TENANT_SCOPED_TABLES,
    postgres_drop_row_policy_statements,
    postgres_row_policy_statements,
)


revision: str = "202610010002"
down_revision: str | None = "202610010001"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    for table_name in TENANT_SCOPED_TABLES:
        for statement in postgres_row_policy_statements(table_name):
            op.execute(statement)


def downgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    for table_name in reversed(TENANT_SCOPED_TABLES):
        for statement in postgres_drop_row_policy_statements(table_name):
            op.execute(statement)
