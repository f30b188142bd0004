"""Bill model."""
import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Enum as SqlEnum, ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, _utcnow


class BillStatus(str, enum.Enum):
    """Payment state of a bill."""

    UNPAID = "unpaid"
    PAID = "paid"


class Bill(Base):
    """Monetary obligation raised by a provider for one service request."""

    __tablename__ = "bills"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_bill_positive_amount"),)

    request_id: Mapped[int] = mapped_column(
        ForeignKey("service_requests.id"), nullable=False, unique=True, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    status: Mapped[BillStatus] = mapped_column(SqlEnum(BillStatus), nullable=False, default=BillStatus.UNPAID)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    request = relationship("ServiceRequest", back_populates="bill")
    payment = relationship("Payment", back_populates="bill", uselist=False)
