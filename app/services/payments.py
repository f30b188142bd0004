"""Checkout order creation for unpaid bills."""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import Settings
from app.models import Bill, BillStatus, Payment, PaymentStatus, ServiceRequest, User
from app.services.idempotency import get_existing_by_key
from app.services.psp_razorpay import PaymentGateway
from app.services.reconciler import to_minor_units
from app.services.settlement import compute_platform_fee
from app.services.status_lattice import StatusEntity, assert_transition
from app.utils.audit import actor_from_user, log_audit
from app.utils.errors import AuthorizationError, NotFoundError

logger = logging.getLogger(__name__)


def create_checkout_order(
    db: Session,
    request_id: int,
    *,
    customer: User,
    gateway: PaymentGateway,
    settings: Settings,
) -> Payment:
    """Open (or reuse) the gateway order a customer pays a bill with."""

    service_request = db.get(ServiceRequest, request_id)
    if service_request is None:
        raise NotFoundError("Service request not found.")
    if service_request.customer_id != customer.id:
        raise AuthorizationError("Not authorized to pay for this request.")

    bill = get_existing_by_key(db, Bill, request_id, key_field="request_id")
    if bill is None:
        raise NotFoundError("No bill found for this request.")
    assert_transition(StatusEntity.BILL, bill.status, BillStatus.PAID)

    existing = get_existing_by_key(db, Payment, bill.id, key_field="bill_id")
    if existing is not None:
        assert_transition(StatusEntity.PAYMENT, existing.status, PaymentStatus.CAPTURED)
        logger.info("Reusing open checkout order", extra={"payment_id": existing.id, "bill_id": bill.id})
        return existing

    order = gateway.create_order(
        amount_minor=to_minor_units(bill.amount),
        currency=settings.PAYMENT_CURRENCY,
        receipt=f"bill-{bill.id}",
        notes={"bill_id": str(bill.id), "request_id": str(request_id)},
    )

    payment = Payment(
        bill_id=bill.id,
        amount=bill.amount,
        platform_fee=compute_platform_fee(bill.amount, settings.PLATFORM_FEE_PERCENT),
        currency=settings.PAYMENT_CURRENCY,
        gateway_order_id=order["id"],
        status=PaymentStatus.CREATED,
    )
    try:
        db.add(payment)
        db.flush()
        log_audit(
            db,
            actor=actor_from_user(customer),
            action="CHECKOUT_ORDER_CREATED",
            entity="Payment",
            entity_id=payment.id,
            data={"bill_id": bill.id, "gateway_order_id": payment.gateway_order_id, "amount": str(bill.amount)},
        )
        db.commit()
    except IntegrityError:
        # A concurrent request opened an order for the same bill first.
        db.rollback()
        existing = get_existing_by_key(db, Payment, bill.id, key_field="bill_id")
        if existing:
            logger.info("Checkout order reuse after race", extra={"payment_id": existing.id})
            return existing
        raise

    db.refresh(payment)
    logger.info(
        "Checkout order created",
        extra={"payment_id": payment.id, "bill_id": bill.id, "gateway_order_id": payment.gateway_order_id},
    )
    return payment


__all__ = ["create_checkout_order"]
