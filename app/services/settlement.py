"""Customer payment settlement: capture a bill's payment and spawn the provider transfer."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import Settings
from app.db import transaction_scope
from app.models import (
    Bill,
    BillStatus,
    Payment,
    PaymentStatus,
    ServiceRequest,
    Transfer,
    TransferStatus,
    User,
)
from app.schemas.payment import PaymentVerification
from app.services.psp_razorpay import PaymentGateway
from app.services.reconciler import reconcile_amount, reconcile_currency
from app.services.signature import verify_payment_signature
from app.services.status_lattice import StatusEntity, apply_transition, assert_transition
from app.utils.audit import actor_from_user, log_audit
from app.utils.errors import (
    AuthorizationError,
    DuplicateOperationError,
    NotFoundError,
    SignatureMismatchError,
    ValidationError,
    error_response,
)
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


@dataclass
class SettlementResult:
    payment: Payment
    transfer: Transfer


def compute_platform_fee(amount: Decimal, fee_percent: Decimal) -> Decimal:
    """Return the marketplace's cut of ``amount``, rounded to the paisa."""

    return (Decimal(amount) * Decimal(fee_percent) / Decimal("100")).quantize(_CENT, rounding=ROUND_HALF_UP)


def transfer_idempotency_key(payment: Payment) -> str:
    return f"transfer:{payment.id}"


def build_transfer(payment: Payment, *, provider_id: int, mode: str) -> Transfer:
    """Create the provider transfer for a captured payment; the amount is fixed here."""

    return Transfer(
        payment_id=payment.id,
        provider_id=provider_id,
        amount=payment.amount - payment.platform_fee,
        currency=payment.currency,
        transfer_mode=mode,
        status=TransferStatus.CREATED,
        idempotency_key=transfer_idempotency_key(payment),
    )


def _require_fields(payload: PaymentVerification) -> tuple[str, str, str]:
    missing = [
        name
        for name in ("razorpay_order_id", "razorpay_payment_id", "razorpay_signature")
        if not (getattr(payload, name) or "").strip()
    ]
    if missing:
        raise ValidationError("Missing payment verification details.", {"missing": missing})
    return (
        payload.razorpay_order_id.strip(),
        payload.razorpay_payment_id.strip(),
        payload.razorpay_signature.strip(),
    )


def _load_owned_request(db: Session, request_id: int, customer: User) -> ServiceRequest:
    service_request = db.get(ServiceRequest, request_id)
    if service_request is None:
        raise NotFoundError("Service request not found.")
    if service_request.customer_id != customer.id:
        logger.warning(
            "Settlement attempted by non-owner",
            extra={"request_id": request_id, "user_id": customer.id},
        )
        raise AuthorizationError("Not authorized to pay for this request.")
    return service_request


def _load_unpaid_bill(db: Session, request_id: int) -> Bill:
    bill = db.scalars(select(Bill).where(Bill.request_id == request_id).with_for_update()).first()
    if bill is None:
        raise NotFoundError("No bill found for this request.")
    assert_transition(StatusEntity.BILL, bill.status, BillStatus.PAID)
    return bill


def _check_existing_payment(db: Session, bill: Bill, order_id: str, payment_id: str) -> Payment | None:
    existing = db.scalars(select(Payment).where(Payment.bill_id == bill.id).with_for_update()).first()
    if existing is not None:
        assert_transition(StatusEntity.PAYMENT, existing.status, PaymentStatus.CAPTURED)
        if existing.gateway_order_id != order_id:
            raise ValidationError(
                "Order does not belong to this bill.",
                {"bill_id": bill.id},
            )

    reused = db.scalars(
        select(Payment.id).where(Payment.gateway_payment_id == payment_id)
    ).first()
    if reused is not None:
        raise DuplicateOperationError(
            "Duplicate payment detected. Payment already captured.",
            {"payment_id": reused},
        )
    return existing


def _check_order_bill(order: dict, bill: Bill) -> None:
    # Orders opened here carry the bill id in their notes; Razorpay sends an
    # empty list when an order has no notes.
    notes = order.get("notes")
    if not isinstance(notes, dict) or "bill_id" not in notes:
        return
    if str(notes["bill_id"]) != str(bill.id):
        logger.warning(
            "Gateway order was opened for another bill",
            extra={"bill_id": bill.id, "order_id": order.get("id"), "order_bill_id": notes["bill_id"]},
        )
        raise ValidationError("Order does not belong to this bill.", {"bill_id": bill.id})


def settle_bill_payment(
    db: Session,
    request_id: int,
    payload: PaymentVerification,
    *,
    customer: User,
    gateway: PaymentGateway,
    settings: Settings,
) -> SettlementResult:
    """Verify a checkout callback and settle the bill of ``request_id``.

    All checks run before any write. The payment capture, the bill update and
    the transfer creation are committed together or not at all.
    """

    order_id, gateway_payment_id, signature = _require_fields(payload)
    service_request = _load_owned_request(db, request_id, customer)
    bill = _load_unpaid_bill(db, request_id)
    payment = _check_existing_payment(db, bill, order_id, gateway_payment_id)

    secret = settings.RAZORPAY_KEY_SECRET
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error_response("GATEWAY_NOT_CONFIGURED", "Payment gateway secret is not configured."),
        )
    if not verify_payment_signature(order_id, gateway_payment_id, signature, secret):
        logger.warning(
            "Payment signature mismatch",
            extra={"request_id": request_id, "bill_id": bill.id, "order_id": order_id},
        )
        raise SignatureMismatchError("Invalid payment signature.")

    order = gateway.fetch_order(order_id)
    _check_order_bill(order, bill)
    reconcile_currency(order.get("currency"), settings.PAYMENT_CURRENCY)
    reconcile_amount(order.get("amount"), bill.amount)

    actor = actor_from_user(customer)
    provider_id = service_request.service.provider_id
    try:
        with transaction_scope(db):
            if payment is None:
                payment = Payment(
                    bill_id=bill.id,
                    amount=bill.amount,
                    platform_fee=compute_platform_fee(bill.amount, settings.PLATFORM_FEE_PERCENT),
                    currency=settings.PAYMENT_CURRENCY,
                    gateway_order_id=order_id,
                    status=PaymentStatus.CREATED,
                )
                db.add(payment)
            apply_transition(
                db,
                payment,
                PaymentStatus.CAPTURED,
                gateway_payment_id=gateway_payment_id,
                method=order.get("method"),
                captured_at=utcnow(),
            )
            apply_transition(db, bill, BillStatus.PAID)

            transfer = build_transfer(payment, provider_id=provider_id, mode=settings.PAYOUT_MODE)
            db.add(transfer)
            db.flush()

            log_audit(
                db,
                actor=actor,
                action="PAYMENT_CAPTURED",
                entity="Payment",
                entity_id=payment.id,
                data={
                    "bill_id": bill.id,
                    "amount": str(payment.amount),
                    "gateway_order_id": order_id,
                    "gateway_payment_id": gateway_payment_id,
                    "razorpay_signature": signature,
                },
            )
            log_audit(
                db,
                actor=actor,
                action="TRANSFER_CREATED",
                entity="Transfer",
                entity_id=transfer.id,
                data={
                    "payment_id": payment.id,
                    "provider_id": provider_id,
                    "amount": str(transfer.amount),
                    "platform_fee": str(payment.platform_fee),
                },
            )
    except IntegrityError as exc:
        logger.warning(
            "Settlement lost a uniqueness race",
            extra={"bill_id": bill.id, "gateway_payment_id": gateway_payment_id},
        )
        raise DuplicateOperationError("Duplicate payment detected. Payment already captured.") from exc

    logger.info(
        "Bill settled",
        extra={
            "request_id": request_id,
            "bill_id": bill.id,
            "payment_id": payment.id,
            "transfer_id": transfer.id,
            "transfer_amount": str(transfer.amount),
        },
    )
    return SettlementResult(payment=payment, transfer=transfer)


__all__ = [
    "SettlementResult",
    "build_transfer",
    "compute_platform_fee",
    "settle_bill_payment",
    "transfer_idempotency_key",
]
