from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from gardengear.core.rbac import Role


class StaffUserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8, max_length=256)
    role: Role = Role.COUNTER
    organisation_id: str | None = Field(default=None, max_length=64)


class StaffUserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: Role
    organisation_id: str | None
    created_at: datetime


class UserDeletedRead(BaseModel):
    message: str = "User deleted successfully"
