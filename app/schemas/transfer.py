"""Schemas for provider payouts."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from app.models.transfer import TransferStatus


class TransferRead(BaseModel):
    id: int
    payment_id: int
    provider_id: int
    amount: Decimal
    currency: str
    transfer_mode: str
    status: TransferStatus
    gateway_payout_id: str | None
    dispatched_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PayoutRead(BaseModel):
    transfer: TransferRead
    gateway_payout_id: str | None
    gateway_status: str | None
