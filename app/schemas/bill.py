"""Bill schemas."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.models.bill import BillStatus


class BillCreate(BaseModel):
    """Omitting ``amount`` bills the service list price."""

    amount: Decimal | None = Field(default=None, gt=Decimal("0"), decimal_places=2)


class BillRead(BaseModel):
    id: int
    request_id: int
    amount: Decimal
    status: BillStatus
    generated_at: datetime

    model_config = ConfigDict(from_attributes=True)
