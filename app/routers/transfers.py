"""Provider transfer (payout) endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.db import get_db
from app.models.api_key import ApiKey, ApiScope
from app.models.transfer import Transfer
from app.schemas.transfer import PayoutRead, TransferRead
from app.security import require_scope
from app.services import payouts as payout_service
from app.services.psp_razorpay import PaymentGateway, get_payment_gateway
from app.utils.audit import actor_from_api_key
from app.utils.errors import NotFoundError

router = APIRouter(prefix="/transfers", tags=["transfers"])


@router.get("/{transfer_id}", response_model=TransferRead)
def get_transfer(
    transfer_id: int,
    db: Session = Depends(get_db),
    api_key: ApiKey = Depends(require_scope({ApiScope.admin, ApiScope.support})),
) -> Transfer:
    transfer = db.get(Transfer, transfer_id)
    if transfer is None:
        raise NotFoundError("Transfer not found.")
    return transfer


@router.post("/{transfer_id}/dispatch", response_model=PayoutRead)
def dispatch_transfer(
    transfer_id: int,
    db: Session = Depends(get_db),
    api_key: ApiKey = Depends(require_scope({ApiScope.admin})),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings),
) -> PayoutRead:
    """Pay a created transfer out to the provider's verified account."""

    result = payout_service.dispatch_transfer(
        db,
        transfer_id,
        gateway=gateway,
        settings=settings,
        actor=actor_from_api_key(api_key, fallback="apikey:unknown"),
    )
    return PayoutRead(
        transfer=TransferRead.model_validate(result.transfer),
        gateway_payout_id=result.payout.get("id"),
        gateway_status=result.payout.get("status"),
    )
