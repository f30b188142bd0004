"""Service request (booking) model."""
import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum as SqlEnum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class ServiceRequestStatus(str, enum.Enum):
    """Lifecycle of a booking request."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class ServiceRequest(Base):
    """A customer's booking request for a service."""

    __tablename__ = "service_requests"
    __table_args__ = (Index("ix_service_requests_status", "status"),)

    service_id: Mapped[int] = mapped_column(ForeignKey("services.id"), nullable=False, index=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    time_slot: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[ServiceRequestStatus] = mapped_column(
        SqlEnum(ServiceRequestStatus), nullable=False, default=ServiceRequestStatus.PENDING
    )

    service = relationship("Service")
    customer = relationship("User")
    bill = relationship("Bill", back_populates="request", uselist=False)
