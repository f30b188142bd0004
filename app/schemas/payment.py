"""Schemas for payment and settlement payloads."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from app.models.payment import PaymentStatus
from app.schemas.transfer import TransferRead


class PaymentVerification(BaseModel):
    """Checkout callback fields echoed by the client after a Razorpay payment.

    All fields are optional at the schema level so that a missing field is
    reported with the marketplace error payload instead of a generic 422.
    """

    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None


class PaymentRead(BaseModel):
    id: int
    bill_id: int
    amount: Decimal
    platform_fee: Decimal
    currency: str
    gateway_order_id: str
    gateway_payment_id: str | None
    method: str | None
    status: PaymentStatus
    captured_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CheckoutOrderRead(BaseModel):
    """What a checkout widget needs to open the gateway payment form."""

    order_id: str
    amount: int
    currency: str
    key_id: str | None
    payment: PaymentRead


class SettlementRead(BaseModel):
    payment: PaymentRead
    transfer: TransferRead
