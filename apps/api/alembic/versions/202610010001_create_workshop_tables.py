"""create workshop tables

Revision ID: 202610010001
Revises:
Create Date: 2026-10-01 00:01:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610010001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _create_tenant_unique_index(name: str, table_name: str, column: str) -> None:
    # NULL organisation ids would otherwise never collide.
    op.create_index(name, table_name, [sa.text("coalesce(organisation_id, '')"), column], unique=True)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organisation_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_organisation_id", "users", ["organisation_id"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organisation_id", sa.String(length=64), nullable=True),
        sa.Column("account_number", sa.String(length=32), nullable=False),
        sa.Column("account_type", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("postcode", sa.String(length=16), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_organisation_id", "customers", ["organisation_id"], unique=False)
    _create_tenant_unique_index("uq_customers_account_number", "customers", "account_number")

    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organisation_id", sa.String(length=64), nullable=True),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("make", sa.String(length=128), nullable=False),
        sa.Column("model", sa.String(length=128), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("warranty_years", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_products_organisation_id", "products", ["organisation_id"], unique=False)
    _create_tenant_unique_index("uq_products_code", "products", "code")

    op.create_table(
        "jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organisation_id", sa.String(length=64), nullable=True),
        sa.Column("code", sa.String(length=8), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=True),
        sa.Column("assigned_mechanic_id", sa.Uuid(), nullable=True),
        sa.Column("machine_make", sa.String(length=128), nullable=False),
        sa.Column("machine_model", sa.String(length=128), nullable=True),
        sa.Column("machine_serial_number", sa.String(length=128), nullable=True),
        sa.Column("machine_type", sa.String(length=64), nullable=False),
        sa.Column("condition_notes", sa.Text(), nullable=True),
        sa.Column("known_issues", sa.Text(), nullable=True),
        sa.Column("customer_requirements", sa.Text(), nullable=True),
        sa.Column("suggested_repair_plan", sa.Text(), nullable=True),
        sa.Column("service_types", sa.JSON(), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["assigned_mechanic_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_jobs_organisation_id", "jobs", ["organisation_id"], unique=False)
    _create_tenant_unique_index("uq_jobs_code", "jobs", "code")
    op.create_index("ix_jobs_status", "jobs", ["organisation_id", "status"], unique=False)

    op.create_table(
        "job_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organisation_id", sa.String(length=64), nullable=True),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("user_name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_job_history_organisation_id", "job_history", ["organisation_id"], unique=False)
    op.create_index("ix_job_history_job_id", "job_history", ["job_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_job_history_job_id", table_name="job_history")
    op.drop_index("ix_job_history_organisation_id", table_name="job_history")
    op.drop_table("job_history")
    op.drop_index("ix_jobs_status", table_name="jobs")
    op.drop_index("uq_jobs_code", table_name="jobs")
    op.drop_index("ix_jobs_organisation_id", table_name="jobs")
    op.drop_table("jobs")
    op.drop_index("uq_products_code", table_name="products")
    op.drop_index("ix_products_organisation_id", table_name="products")
    op.drop_table("products")
    op.drop_index("uq_customers_account_number", table_name="customers")
    op.drop_index("ix_customers_organisation_id", table_name="customers")
    op.drop_table("customers")
    op.drop_index("ix_users_organisation_id", table_name="users")
    op.drop_table("users")
