"""Background cron jobs for maintenance tasks."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import db
from app.config import get_settings
from app.models import Bill, BillStatus, Payment, PaymentStatus, Transfer
from app.services.idempotency import get_existing_by_key
from app.services.settlement import build_transfer, transfer_idempotency_key
from app.utils.audit import log_audit

logger = logging.getLogger(__name__)


def _orphaned_payments(session: Session) -> list[Payment]:
    stmt = (
        select(Payment)
        .join(Bill, Bill.id == Payment.bill_id)
        .outerjoin(Transfer, Transfer.payment_id == Payment.id)
        .where(
            Bill.status == BillStatus.PAID,
            Payment.status == PaymentStatus.CAPTURED,
            Transfer.id.is_(None),
        )
        .order_by(Payment.id)
    )
    return list(session.scalars(stmt))


def repair_orphaned_settlements_once(db_session: Session | None = None) -> int:
    """Create the missing transfer of every captured payment that has none.

    Returns the number of transfers created.
    """

    session = db_session
    should_close = False
    if session is None:
        session = db.get_sessionmaker()()
        should_close = True

    mode = get_settings().PAYOUT_MODE
    repaired = 0
    try:
        for payment in _orphaned_payments(session):
            if get_existing_by_key(session, Transfer, transfer_idempotency_key(payment)) is not None:
                continue
            provider_id = payment.bill.request.service.provider_id
            transfer = build_transfer(payment, provider_id=provider_id, mode=mode)
            try:
                session.add(transfer)
                session.flush()
                log_audit(
                    session,
                    actor="system:repair",
                    action="TRANSFER_REPAIRED",
                    entity="Transfer",
                    entity_id=transfer.id,
                    data={"payment_id": payment.id, "provider_id": provider_id, "amount": str(transfer.amount)},
                )
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.info("Transfer created concurrently during repair", extra={"payment_id": payment.id})
                continue
            repaired += 1
            logger.warning(
                "Repaired settlement without transfer",
                extra={"payment_id": payment.id, "transfer_id": transfer.id},
            )
    finally:
        if should_close:
            session.close()
    return repaired


__all__ = ["repair_orphaned_settlements_once"]
