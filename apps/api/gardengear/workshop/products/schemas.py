from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProductCreate(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    make: str = Field(min_length=1, max_length=128)
    model: str = Field(min_length=1, max_length=128)
    type: str = Field(min_length=1, max_length=64)
    price: Decimal = Field(ge=Decimal("0"))
    warranty_years: int = Field(default=0, ge=0)


class ProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    make: str
    model: str
    type: str
    price: Decimal
    warranty_years: int
    organisation_id: str | None
