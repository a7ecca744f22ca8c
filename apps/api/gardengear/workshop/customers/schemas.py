from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


AccountType = Literal["Personal", "Business"]


class CustomerCreate(BaseModel):
    account_number: str | None = Field(default=None, min_length=1, max_length=32)
    account_type: AccountType = "Personal"
    name: str = Field(min_length=1, max_length=255)
    company_name: str | None = Field(default=None, max_length=255)
    address: str | None = None
    postcode: str | None = Field(default=None, max_length=16)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=64)


class CustomerUpdate(BaseModel):
    account_type: AccountType = "Personal"
    name: str = Field(min_length=1, max_length=255)
    company_name: str | None = Field(default=None, max_length=255)
    address: str | None = None
    postcode: str | None = Field(default=None, max_length=16)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=64)


class CustomerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_number: str
    account_type: AccountType
    name: str
    company_name: str | None
    address: str | None
    postcode: str | None
    email: str | None
    phone: str | None
    organisation_id: str | None
    created_at: datetime
    updated_at: datetime
