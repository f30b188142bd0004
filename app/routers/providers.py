"""Provider endpoints: catalogue, booking lifecycle, bills and bank details."""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.bank_detail import ProviderBankDetail
from app.models.bill import Bill
from app.models.service import Service
from app.models.service_request import ServiceRequest, ServiceRequestStatus
from app.models.user import User
from app.schemas.bank_detail import BankDetailCreate, BankDetailRead
from app.schemas.bill import BillCreate, BillRead
from app.schemas.service import ServiceCreate, ServiceRead, ServiceUpdate
from app.schemas.service_request import ServiceRequestRead
from app.security import require_provider
from app.services import bank_details as bank_detail_service
from app.services import bookings as booking_service

router = APIRouter(prefix="/provider", tags=["provider"])


@router.post("/services", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceCreate,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
) -> Service:
    return booking_service.create_service(db, payload, provider=provider)


@router.put("/services/{service_id}", response_model=ServiceRead)
def update_service(
    service_id: int,
    payload: ServiceUpdate,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
) -> Service:
    return booking_service.update_service(db, service_id, payload, provider=provider)


@router.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: int,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
) -> Response:
    booking_service.delete_service(db, service_id, provider=provider)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/requests/{request_id}/accept", response_model=ServiceRequestRead)
def accept_request(
    request_id: int,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
) -> ServiceRequest:
    return booking_service.transition_request(db, request_id, ServiceRequestStatus.ACCEPTED, provider=provider)


@router.patch("/requests/{request_id}/reject", response_model=ServiceRequestRead)
def reject_request(
    request_id: int,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
) -> ServiceRequest:
    return booking_service.transition_request(db, request_id, ServiceRequestStatus.REJECTED, provider=provider)


@router.patch("/requests/{request_id}/complete", response_model=ServiceRequestRead)
def complete_request(
    request_id: int,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
) -> ServiceRequest:
    return booking_service.transition_request(db, request_id, ServiceRequestStatus.COMPLETED, provider=provider)


@router.post("/requests/{request_id}/bill", response_model=BillRead, status_code=status.HTTP_201_CREATED)
def generate_bill(
    request_id: int,
    payload: BillCreate | None = None,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
) -> Bill:
    return booking_service.generate_bill(db, request_id, payload or BillCreate(), provider=provider)


@router.post("/bankDetails", response_model=BankDetailRead, status_code=status.HTTP_201_CREATED)
def register_bank_details(
    payload: BankDetailCreate,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
) -> ProviderBankDetail:
    return bank_detail_service.register_bank_details(db, payload, provider=provider)
