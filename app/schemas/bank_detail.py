"""Provider bank detail schemas."""
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.models.bank_detail import BankVerificationStatus


class BankDetailCreate(BaseModel):
    account_holder_name: str = Field(..., min_length=1, max_length=120)
    account_number: str = Field(..., pattern=r"^\d{9,18}$")
    ifsc: str = Field(..., pattern=r"^[A-Z]{4}0[A-Z0-9]{6}$")


class BankVerificationUpdate(BaseModel):
    verification_status: Literal["verified", "unverified"]
    gateway_fund_account_id: str | None = Field(default=None, max_length=64)


class BankDetailRead(BaseModel):
    id: int
    provider_id: int
    account_holder_name: str
    account_number: str = Field(exclude=True)
    ifsc: str
    gateway_fund_account_id: str | None
    verification_status: BankVerificationStatus

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def account_number_last4(self) -> str:
        return self.account_number[-4:]
