from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    INTAKE = "Intake"
    DIAGNOSIS = "Diagnosis"
    IN_PROGRESS = "In Progress"
    WAITING_FOR_PARTS = "Waiting for Parts"
    QUALITY_CHECK = "Quality Check"
    COMPLETED = "Completed"
    READY_FOR_PICKUP = "Ready for Pickup"


class MachineDetails(BaseModel):
    make: str = Field(min_length=1, max_length=128)
    model: str | None = Field(default=None, max_length=128)
    serial_number: str | None = Field(default=None, max_length=128)
    type: str = Field(min_length=1, max_length=64)
    condition_notes: str | None = None


class ServiceRequest(BaseModel):
    known_issues: str | None = None
    customer_requirements: str | None = None
    booking_date: date | None = None
    suggested_repair_plan: str | None = None
    service_types: list[str] = Field(default_factory=list)


class JobCreate(BaseModel):
    customer_id: UUID | None = None
    machine: MachineDetails
    service: ServiceRequest = Field(default_factory=ServiceRequest)


class JobStatusUpdate(BaseModel):
    status: JobStatus


class JobAssign(BaseModel):
    mechanic_id: UUID | None = None


class JobHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    action: str
    user_id: str
    user_name: str
    created_at: datetime


class JobRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    status: JobStatus
    customer_id: UUID | None
    assigned_mechanic_id: UUID | None
    machine_make: str
    machine_model: str | None
    machine_serial_number: str | None
    machine_type: str
    condition_notes: str | None
    known_issues: str | None
    customer_requirements: str | None
    suggested_repair_plan: str | None
    service_types: list[str]
    booking_date: date | None
    organisation_id: str | None
    created_at: datetime
    updated_at: datetime
    history: list[JobHistoryRead] = Field(default_factory=list)
