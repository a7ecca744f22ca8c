from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gardengear.core.database import Base, utcnow
from gardengear.platform.tenancy.policies import TenantScopedMixin, tenant_unique_index


class Job(TenantScopedMixin, Base):
    __tablename__ = "jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(8), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_mechanic_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    machine_make: Mapped[str] = mapped_column(String(128), nullable=False)
    machine_model: Mapped[str | None] = mapped_column(String(128), nullable=True)
    machine_serial_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    machine_type: Mapped[str] = mapped_column(String(64), nullable=False)
    condition_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    known_issues: Mapped[str | None] = mapped_column(Text, nullable=True)
    customer_requirements: Mapped[str | None] = mapped_column(Text, nullable=True)
    suggested_repair_plan: Mapped[str | None] = mapped_column(Text, nullable=True)
    service_types: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    booking_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    history: Mapped[list[JobHistoryEntry]] = relationship(
        "JobHistoryEntry",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="JobHistoryEntry.created_at",
    )

    __table_args__ = (Index("ix_jobs_status", "organisation_id", "status"),)


class JobHistoryEntry(TenantScopedMixin, Base):
    __tablename__ = "job_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    job: Mapped[Job] = relationship("Job", back_populates="history")


tenant_unique_index("uq_jobs_code", Job.__table__, "code")  # type: ignore[arg-type]
