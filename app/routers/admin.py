"""Back-office endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.api_key import ApiKey, ApiScope
from app.models.bank_detail import ProviderBankDetail
from app.schemas.bank_detail import BankDetailRead, BankVerificationUpdate
from app.security import require_scope
from app.services import bank_details as bank_detail_service
from app.utils.audit import actor_from_api_key

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/bank-details/{bank_detail_id}/verification", response_model=BankDetailRead)
def record_bank_verification(
    bank_detail_id: int,
    payload: BankVerificationUpdate,
    db: Session = Depends(get_db),
    api_key: ApiKey = Depends(require_scope({ApiScope.admin})),
) -> ProviderBankDetail:
    return bank_detail_service.record_verification(
        db,
        bank_detail_id,
        payload,
        actor=actor_from_api_key(api_key, fallback="apikey:unknown"),
    )
