"""Provider payout destination."""
import enum

from sqlalchemy import Enum as SqlEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class BankVerificationStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    UNVERIFIED = "unverified"


class ProviderBankDetail(Base):
    """Bank account registered by a provider to receive payouts."""

    __tablename__ = "provider_bank_details"

    provider_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, unique=True, index=True)
    account_holder_name: Mapped[str] = mapped_column(String(120), nullable=False)
    account_number: Mapped[str] = mapped_column(String(34), nullable=False)
    ifsc: Mapped[str] = mapped_column(String(11), nullable=False)
    gateway_fund_account_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    verification_status: Mapped[BankVerificationStatus] = mapped_column(
        SqlEnum(BankVerificationStatus), nullable=False, default=BankVerificationStatus.PENDING
    )

    provider = relationship("User", back_populates="bank_detail")
