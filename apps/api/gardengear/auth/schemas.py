from __future__ import annotations

from pydantic import BaseModel, Field

from gardengear.workshop.users.schemas import StaffUserRead


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=256)


class TokenResponse(BaseModel):
    token: str
    user: StaffUserRead
