"""Service catalogue model."""
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Service(Base):
    """A service offered by a provider, optionally grouped under a parent service."""

    __tablename__ = "services"
    __table_args__ = (CheckConstraint("price > 0", name="ck_service_positive_price"),)

    provider_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    parent_service_id: Mapped[int | None] = mapped_column(
        ForeignKey("services.id", ondelete="SET NULL"), nullable=True, index=True
    )

    provider = relationship("User", back_populates="services")
    parent_service = relationship("Service", remote_side="Service.id", back_populates="child_services")
    child_services = relationship("Service", back_populates="parent_service")
