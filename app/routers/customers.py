"""Customer endpoints: bookings, checkout orders and settlement."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.db import get_db
from app.models.service_request import ServiceRequest
from app.models.user import User
from app.schemas.payment import CheckoutOrderRead, PaymentRead, PaymentVerification, SettlementRead
from app.schemas.service import ServiceDetail
from app.schemas.service_request import ServiceRequestCreate, ServiceRequestRead
from app.security import require_customer
from app.services import bookings as booking_service
from app.services import payments as payment_service
from app.services import settlement as settlement_service
from app.services.psp_razorpay import PaymentGateway, get_payment_gateway
from app.services.reconciler import to_minor_units

router = APIRouter(prefix="/customer", tags=["customer"])


@router.get("/services/info/{service_id}", response_model=ServiceDetail)
def get_service_details(
    service_id: int,
    db: Session = Depends(get_db),
    customer: User = Depends(require_customer),
) -> ServiceDetail:
    return booking_service.get_service_details(db, service_id)


@router.post("/requests", response_model=ServiceRequestRead, status_code=status.HTTP_201_CREATED)
def create_request(
    payload: ServiceRequestCreate,
    db: Session = Depends(get_db),
    customer: User = Depends(require_customer),
) -> ServiceRequest:
    return booking_service.create_request(db, payload, customer=customer)


@router.get("/requests/{request_id}", response_model=ServiceRequestRead)
def get_request(
    request_id: int,
    db: Session = Depends(get_db),
    customer: User = Depends(require_customer),
) -> ServiceRequest:
    return booking_service.get_customer_request(db, request_id, customer=customer)


@router.post("/requests/{request_id}/order", response_model=CheckoutOrderRead, status_code=status.HTTP_201_CREATED)
def create_checkout_order(
    request_id: int,
    db: Session = Depends(get_db),
    customer: User = Depends(require_customer),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings),
) -> CheckoutOrderRead:
    """Open the gateway order the checkout widget collects the bill with."""

    payment = payment_service.create_checkout_order(
        db, request_id, customer=customer, gateway=gateway, settings=settings
    )
    return CheckoutOrderRead(
        order_id=payment.gateway_order_id,
        amount=to_minor_units(payment.amount),
        currency=payment.currency,
        key_id=settings.RAZORPAY_KEY_ID,
        payment=PaymentRead.model_validate(payment),
    )


@router.post("/requests/{request_id}/pay", response_model=SettlementRead)
def pay_request(
    request_id: int,
    payload: PaymentVerification,
    db: Session = Depends(get_db),
    customer: User = Depends(require_customer),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings),
) -> SettlementRead:
    """Verify the checkout callback and settle the request's bill."""

    result = settlement_service.settle_bill_payment(
        db, request_id, payload, customer=customer, gateway=gateway, settings=settings
    )
    return SettlementRead.model_validate(result, from_attributes=True)
