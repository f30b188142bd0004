"""Provider payouts for transfers created at settlement time."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import Settings
from app.db import transaction_scope
from app.models import BankVerificationStatus, ProviderBankDetail, Transfer, TransferStatus
from app.services.psp_razorpay import PaymentGateway
from app.services.reconciler import to_minor_units
from app.services.status_lattice import StatusEntity, apply_transition, assert_transition
from app.utils.audit import log_audit
from app.utils.errors import DuplicateOperationError, NotFoundError, ValidationError, error_response
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


@dataclass
class PayoutResult:
    transfer: Transfer
    payout: dict[str, Any]


def _verified_fund_account(db: Session, provider_id: int) -> str:
    detail = db.scalars(
        select(ProviderBankDetail).where(ProviderBankDetail.provider_id == provider_id)
    ).first()
    if detail is None:
        raise ValidationError("Provider has no bank details on file.", {"provider_id": provider_id})
    if detail.verification_status != BankVerificationStatus.VERIFIED:
        raise ValidationError(
            "Provider bank details are not verified.",
            {"provider_id": provider_id, "verification_status": detail.verification_status.value},
        )
    if not detail.gateway_fund_account_id:
        raise ValidationError(
            "Provider bank details are not linked to a gateway fund account.",
            {"provider_id": provider_id},
        )
    return detail.gateway_fund_account_id


def dispatch_transfer(
    db: Session,
    transfer_id: int,
    *,
    gateway: PaymentGateway,
    settings: Settings,
    actor: str,
) -> PayoutResult:
    """Pay a created transfer out to the provider's verified bank account.

    The transfer only moves to ``captured`` after the gateway accepted the
    payout. A failed call leaves it ``created`` so the dispatch can be retried;
    the idempotency key sent with every attempt is the one fixed at settlement.
    """

    transfer = db.scalars(select(Transfer).where(Transfer.id == transfer_id).with_for_update()).first()
    if transfer is None:
        raise NotFoundError("Transfer not found.")
    assert_transition(StatusEntity.TRANSFER, transfer.status, TransferStatus.CAPTURED)

    fund_account_id = _verified_fund_account(db, transfer.provider_id)

    try:
        payout = gateway.create_payout(
            fund_account_id=fund_account_id,
            amount_minor=to_minor_units(transfer.amount),
            currency=transfer.currency,
            mode=transfer.transfer_mode,
            notes={
                "transfer_id": str(transfer.id),
                "payment_id": str(transfer.payment_id),
                "provider_id": str(transfer.provider_id),
            },
            idempotency_key=transfer.idempotency_key,
        )
    except RuntimeError as exc:
        logger.error("Payout gateway misconfigured", extra={"transfer_id": transfer.id, "error": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error_response("GATEWAY_NOT_CONFIGURED", str(exc)),
        ) from exc

    payout_id = payout.get("id")
    try:
        with transaction_scope(db):
            apply_transition(
                db,
                transfer,
                TransferStatus.CAPTURED,
                gateway_payout_id=payout_id,
                dispatched_at=utcnow(),
            )
            log_audit(
                db,
                actor=actor,
                action="TRANSFER_DISPATCHED",
                entity="Transfer",
                entity_id=transfer.id,
                data={
                    "provider_id": transfer.provider_id,
                    "amount": str(transfer.amount),
                    "gateway_payout_id": payout_id,
                    "gateway_status": payout.get("status"),
                    "gateway_fund_account_id": fund_account_id,
                },
            )
    except IntegrityError as exc:
        raise DuplicateOperationError(
            "Payout already recorded for another transfer.",
            {"gateway_payout_id": payout_id},
        ) from exc

    logger.info(
        "Transfer dispatched",
        extra={
            "transfer_id": transfer.id,
            "provider_id": transfer.provider_id,
            "gateway_payout_id": payout_id,
            "gateway_status": payout.get("status"),
        },
    )
    return PayoutResult(transfer=transfer, payout=payout)


__all__ = ["PayoutResult", "dispatch_transfer"]
