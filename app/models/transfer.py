"""Provider payout (transfer) model."""
import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Enum as SqlEnum, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class TransferStatus(str, enum.Enum):
    """Possible statuses for a provider payout."""

    CREATED = "created"
    CAPTURED = "captured"


class Transfer(Base):
    """Funds owed to a provider for a captured payment, net of the platform fee."""

    __tablename__ = "transfers"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transfer_non_negative_amount"),
        Index("ix_transfers_status", "status"),
    )

    payment_id: Mapped[int] = mapped_column(ForeignKey("payments.id"), nullable=False, unique=True, index=True)
    provider_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    transfer_mode: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[TransferStatus] = mapped_column(
        SqlEnum(TransferStatus), nullable=False, default=TransferStatus.CREATED
    )
    idempotency_key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    gateway_payout_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    dispatched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    payment = relationship("Payment", back_populates="transfer")
    provider = relationship("User")
