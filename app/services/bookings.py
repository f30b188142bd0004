"""Service catalogue, booking requests and bill generation."""
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db import transaction_scope
from app.models import (
    Bill,
    BillStatus,
    Service,
    ServiceRequest,
    ServiceRequestStatus,
    User,
)
from app.schemas.bill import BillCreate
from app.schemas.service import ServiceCreate, ServiceDetail, ServiceSummary, ServiceUpdate
from app.schemas.service_request import ServiceRequestCreate
from app.services.idempotency import get_existing_by_key
from app.services.status_lattice import apply_transition
from app.utils.audit import actor_from_user, log_audit
from app.utils.errors import (
    AuthorizationError,
    DuplicateOperationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from app.utils.time import ensure_aware, utcnow

logger = logging.getLogger(__name__)

_BILLABLE = {ServiceRequestStatus.ACCEPTED, ServiceRequestStatus.COMPLETED}


def _load_parent(db: Session, parent_service_id: int) -> Service:
    parent = db.get(Service, parent_service_id)
    if parent is None:
        raise NotFoundError("Parent service not found.", {"parent_service_id": parent_service_id})
    return parent


def _load_owned_service(db: Session, service_id: int, provider: User) -> Service:
    service = db.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service not found.")
    if service.provider_id != provider.id:
        logger.warning(
            "Provider acted on another provider's service",
            extra={"service_id": service_id, "provider_id": provider.id},
        )
        raise AuthorizationError("Not authorized to manage this service.")
    return service


def create_service(db: Session, payload: ServiceCreate, *, provider: User) -> Service:
    if payload.parent_service_id is not None:
        _load_parent(db, payload.parent_service_id)

    service = Service(
        provider_id=provider.id,
        name=payload.name,
        description=payload.description,
        price=payload.price,
        address=payload.address,
        parent_service_id=payload.parent_service_id,
    )
    db.add(service)
    db.flush()
    log_audit(
        db,
        actor=actor_from_user(provider),
        action="SERVICE_CREATED",
        entity="Service",
        entity_id=service.id,
        data={"name": service.name, "price": str(service.price)},
    )
    db.commit()
    db.refresh(service)
    logger.info("Service created", extra={"service_id": service.id, "provider_id": provider.id})
    return service



def update_service(db: Session, service_id: int, payload: ServiceUpdate, *, provider: User) -> Service:
    """Apply the fields set in ``payload`` to one of the provider's services."""

    service = _load_owned_service(db, service_id, provider)
    changes = payload.model_dump(exclude_unset=True)
    for required in ("name", "price"):
        if changes.get(required, "") is None:
            changes.pop(required)

    parent_id = changes.get("parent_service_id")
    if parent_id is not None:
        parent = _load_parent(db, parent_id)
        # Walk up from the new parent so a service never ends up under itself.
        while parent is not None:
            if parent.id == service.id:
                raise ValidationError(
                    "A service cannot be nested under itself.",
                    {"service_id": service.id, "parent_service_id": parent_id},
                )
            parent = parent.parent_service

    for field, value in changes.items():
        setattr(service, field, value)
    db.flush()
    log_audit(
        db,
        actor=actor_from_user(provider),
        action="SERVICE_UPDATED",
        entity="Service",
        entity_id=service.id,
        data={field: str(value) if value is not None else None for field, value in changes.items()},
    )
    db.commit()
    db.refresh(service)
    logger.info("Service updated", extra={"service_id": service.id, "fields": sorted(changes)})
    return service


def delete_service(db: Session, service_id: int, *, provider: User) -> None:
    """Remove a service that was never booked; its child services are detached."""

    service = _load_owned_service(db, service_id, provider)
    bookings = db.scalar(
        select(func.count()).select_from(ServiceRequest).where(ServiceRequest.service_id == service.id)
    )
    if bookings:
        raise ValidationError(
            "Service has booking requests and cannot be deleted.",
            {"service_id": service.id, "requests": bookings},
        )

    for child in list(service.child_services):
        child.parent_service = None
    db.delete(service)
    log_audit(
        db,
        actor=actor_from_user(provider),
        action="SERVICE_DELETED",
        entity="Service",
        entity_id=service_id,
        data={"name": service.name},
    )
    db.commit()
    logger.info("Service deleted", extra={"service_id": service_id, "provider_id": provider.id})


def get_service_details(db: Session, service_id: int) -> ServiceDetail:
    service = db.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service not found.")

    children = db.scalars(
        select(Service).where(Service.parent_service_id == service.id).order_by(Service.id)
    ).all()
    return ServiceDetail(
        id=service.id,
        provider_id=service.provider_id,
        provider_name=service.provider.username,
        name=service.name,
        description=service.description,
        price=service.price,
        address=service.address,
        parent_service_id=service.parent_service_id,
        parent_service=ServiceSummary.model_validate(service.parent_service) if service.parent_service else None,
        child_services=[ServiceSummary.model_validate(child) for child in children],
    )


def create_request(db: Session, payload: ServiceRequestCreate, *, customer: User) -> ServiceRequest:
    """Book a service for a future time slot."""

    if ensure_aware(payload.time_slot) <= utcnow():
        raise ValidationError("Time slot must be in the future.", {"time_slot": payload.time_slot.isoformat()})

    service = db.get(Service, payload.service_id)
    if service is None:
        raise NotFoundError("Service not found.")

    service_request = ServiceRequest(
        service_id=service.id,
        customer_id=customer.id,
        time_slot=ensure_aware(payload.time_slot),
        status=ServiceRequestStatus.PENDING,
    )
    db.add(service_request)
    db.flush()
    log_audit(
        db,
        actor=actor_from_user(customer),
        action="SERVICE_REQUEST_CREATED",
        entity="ServiceRequest",
        entity_id=service_request.id,
        data={"service_id": service.id, "time_slot": service_request.time_slot.isoformat()},
    )
    db.commit()
    db.refresh(service_request)
    logger.info(
        "Service request created",
        extra={"request_id": service_request.id, "service_id": service.id, "customer_id": customer.id},
    )
    return service_request


def get_customer_request(db: Session, request_id: int, *, customer: User) -> ServiceRequest:
    service_request = db.get(ServiceRequest, request_id)
    if service_request is None:
        raise NotFoundError("Service request not found.")
    if service_request.customer_id != customer.id:
        raise AuthorizationError("Not authorized to view this request.")
    return service_request


def _load_provider_request(db: Session, request_id: int, provider: User) -> ServiceRequest:
    service_request = db.get(ServiceRequest, request_id)
    if service_request is None:
        raise NotFoundError("Service request not found.")
    if service_request.service.provider_id != provider.id:
        logger.warning(
            "Provider acted on a request for another provider's service",
            extra={"request_id": request_id, "provider_id": provider.id},
        )
        raise AuthorizationError("Not authorized to manage this request.")
    return service_request


def transition_request(
    db: Session,
    request_id: int,
    target: ServiceRequestStatus,
    *,
    provider: User,
) -> ServiceRequest:
    """Accept, reject or complete a booking on behalf of its provider."""

    service_request = _load_provider_request(db, request_id, provider)
    previous = service_request.status
    with transaction_scope(db):
        apply_transition(db, service_request, target)
        log_audit(
            db,
            actor=actor_from_user(provider),
            action=f"SERVICE_REQUEST_{target.name}",
            entity="ServiceRequest",
            entity_id=service_request.id,
            data={"from": previous.value, "to": target.value},
        )
    return service_request


def generate_bill(db: Session, request_id: int, payload: BillCreate, *, provider: User) -> Bill:
    """Raise the single bill of an accepted request."""

    service_request = _load_provider_request(db, request_id, provider)
    if service_request.status not in _BILLABLE:
        raise InvalidStateTransitionError(
            "Only accepted requests can be billed.",
            {"request_id": request_id, "status": service_request.status.value},
        )

    existing = get_existing_by_key(db, Bill, request_id, key_field="request_id")
    if existing is not None:
        raise DuplicateOperationError("A bill already exists for this request.", {"bill_id": existing.id})

    amount = payload.amount if payload.amount is not None else service_request.service.price
    bill = Bill(request_id=request_id, amount=amount, status=BillStatus.UNPAID, generated_at=utcnow())
    try:
        db.add(bill)
        db.flush()
        log_audit(
            db,
            actor=actor_from_user(provider),
            action="BILL_GENERATED",
            entity="Bill",
            entity_id=bill.id,
            data={"request_id": request_id, "amount": str(amount)},
        )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateOperationError("A bill already exists for this request.") from exc

    db.refresh(bill)
    logger.info("Bill generated", extra={"bill_id": bill.id, "request_id": request_id, "amount": str(amount)})
    return bill


__all__ = [
    "create_request",
    "create_service",
    "delete_service",
    "generate_bill",
    "get_customer_request",
    "get_service_details",
    "transition_request",
    "update_service",
]
