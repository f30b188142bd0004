"""Service request schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.service_request import ServiceRequestStatus
from app.schemas.bill import BillRead


class ServiceRequestCreate(BaseModel):
    service_id: int
    time_slot: datetime


class ServiceRequestRead(BaseModel):
    id: int
    service_id: int
    customer_id: int
    time_slot: datetime
    status: ServiceRequestStatus
    bill: BillRead | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
