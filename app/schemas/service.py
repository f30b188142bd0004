"""Service catalogue schemas."""
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: str | None = None
    price: Decimal = Field(gt=Decimal("0"), decimal_places=2)
    address: str | None = Field(default=None, max_length=255)
    parent_service_id: int | None = None


class ServiceUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    price: Decimal | None = Field(default=None, gt=Decimal("0"), decimal_places=2)
    address: str | None = Field(default=None, max_length=255)
    parent_service_id: int | None = None


class ServiceRead(BaseModel):
    id: int
    provider_id: int
    name: str
    description: str | None
    price: Decimal
    address: str | None = None
    parent_service_id: int | None = None

    model_config = ConfigDict(from_attributes=True)


class ServiceSummary(BaseModel):
    id: int
    name: str
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class ServiceDetail(ServiceRead):
    provider_name: str
    parent_service: ServiceSummary | None = None
    child_services: list[ServiceSummary] = []
