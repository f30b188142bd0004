"""Provider payout destinations and their verification."""
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import BankVerificationStatus, ProviderBankDetail, User
from app.schemas.bank_detail import BankDetailCreate, BankVerificationUpdate
from app.utils.audit import actor_from_user, log_audit
from app.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def register_bank_details(db: Session, payload: BankDetailCreate, *, provider: User) -> ProviderBankDetail:
    """Create or replace the provider's bank details.

    Any change sends the record back to ``pending``; payouts stay blocked until
    an operator verifies the new account.
    """

    detail = db.scalars(
        select(ProviderBankDetail).where(ProviderBankDetail.provider_id == provider.id)
    ).first()
    action = "BANK_DETAILS_UPDATED"
    if detail is None:
        detail = ProviderBankDetail(provider_id=provider.id)
        action = "BANK_DETAILS_REGISTERED"
        db.add(detail)

    detail.account_holder_name = payload.account_holder_name
    detail.account_number = payload.account_number
    detail.ifsc = payload.ifsc
    detail.gateway_fund_account_id = None
    detail.verification_status = BankVerificationStatus.PENDING
    db.flush()

    log_audit(
        db,
        actor=actor_from_user(provider),
        action=action,
        entity="ProviderBankDetail",
        entity_id=detail.id,
        data={"account_number": payload.account_number, "ifsc": payload.ifsc},
    )
    db.commit()
    db.refresh(detail)
    logger.info("Provider bank details stored", extra={"provider_id": provider.id, "bank_detail_id": detail.id})
    return detail


def record_verification(
    db: Session,
    bank_detail_id: int,
    payload: BankVerificationUpdate,
    *,
    actor: str,
) -> ProviderBankDetail:
    detail = db.get(ProviderBankDetail, bank_detail_id)
    if detail is None:
        raise NotFoundError("Bank details not found.")

    outcome = BankVerificationStatus(payload.verification_status)
    if outcome == BankVerificationStatus.VERIFIED and not (
        payload.gateway_fund_account_id or detail.gateway_fund_account_id
    ):
        raise ValidationError("A verified account needs a gateway fund account id.")

    detail.verification_status = outcome
    if payload.gateway_fund_account_id:
        detail.gateway_fund_account_id = payload.gateway_fund_account_id
    log_audit(
        db,
        actor=actor,
        action="BANK_DETAILS_VERIFICATION",
        entity="ProviderBankDetail",
        entity_id=detail.id,
        data={
            "verification_status": outcome.value,
            "gateway_fund_account_id": detail.gateway_fund_account_id,
        },
    )
    db.commit()
    db.refresh(detail)
    logger.info(
        "Bank details verification recorded",
        extra={"bank_detail_id": detail.id, "provider_id": detail.provider_id, "status": outcome.value},
    )
    return detail


__all__ = ["register_bank_details", "record_verification"]
