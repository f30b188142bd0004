"""Allowed status transitions for bills, payments, transfers and service requests.

This module is the only place that writes a ``status`` column. Writes are
compare-and-swap updates (``WHERE id = :id AND status = :current``), so two
concurrent callers cannot both move the same row out of the same state.
"""
from __future__ import annotations

import enum
import logging
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models import (
    Bill,
    BillStatus,
    Payment,
    PaymentStatus,
    ServiceRequest,
    ServiceRequestStatus,
    Transfer,
    TransferStatus,
)
from app.utils.errors import DuplicateOperationError, InvalidStateTransitionError
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


class StatusEntity(str, enum.Enum):
    BILL = "bill"
    PAYMENT = "payment"
    TRANSFER = "transfer"
    SERVICE_REQUEST = "service_request"


ALLOWED: dict[StatusEntity, dict[enum.Enum, set[enum.Enum]]] = {
    StatusEntity.PAYMENT: {
        PaymentStatus.CREATED: {PaymentStatus.CAPTURED},
        PaymentStatus.CAPTURED: set(),
        PaymentStatus.FAILED: set(),
    },
    StatusEntity.BILL: {
        BillStatus.UNPAID: {BillStatus.PAID},
        BillStatus.PAID: set(),
    },
    StatusEntity.TRANSFER: {
        TransferStatus.CREATED: {TransferStatus.CAPTURED},
        TransferStatus.CAPTURED: set(),
    },
    StatusEntity.SERVICE_REQUEST: {
        ServiceRequestStatus.PENDING: {ServiceRequestStatus.ACCEPTED, ServiceRequestStatus.REJECTED},
        ServiceRequestStatus.ACCEPTED: {ServiceRequestStatus.COMPLETED},
        ServiceRequestStatus.REJECTED: set(),
        ServiceRequestStatus.COMPLETED: set(),
    },
}

_MODELS: dict[type, StatusEntity] = {
    Bill: StatusEntity.BILL,
    Payment: StatusEntity.PAYMENT,
    Transfer: StatusEntity.TRANSFER,
    ServiceRequest: StatusEntity.SERVICE_REQUEST,
}


def can_transition(entity: StatusEntity, current: enum.Enum, target: enum.Enum) -> bool:
    return target in ALLOWED[entity].get(current, set())


def assert_transition(entity: StatusEntity, current: enum.Enum, target: enum.Enum) -> None:
    """Raise unless ``current -> target`` is an allowed edge for ``entity``.

    Being already in ``target`` is reported as a duplicate, which is what a
    retried request looks like; every other refusal is an invalid transition.
    """

    if can_transition(entity, current, target):
        return
    if current == target:
        raise DuplicateOperationError(
            f"{entity.value.replace('_', ' ').capitalize()} is already {target.value}.",
            {"entity": entity.value, "status": current.value},
        )
    raise InvalidStateTransitionError(
        f"Cannot move {entity.value.replace('_', ' ')} from {current.value} to {target.value}.",
        {"entity": entity.value, "from": current.value, "to": target.value},
    )


def apply_transition(db: Session, row: Any, target: enum.Enum, **values: Any) -> None:
    """Move ``row`` to ``target`` with a compare-and-swap update.

    Extra column ``values`` are written in the same statement. Raises
    ``DuplicateOperationError`` when another writer changed the status first.
    """

    model = type(row)
    entity = _MODELS[model]
    current = row.status
    assert_transition(entity, current, target)

    db.flush()
    result = db.execute(
        update(model)
        .where(model.id == row.id, model.status == current)
        .values(status=target, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(
            "Concurrent status change detected",
            extra={"entity": entity.value, "entity_id": row.id, "from": current.value, "to": target.value},
        )
        raise DuplicateOperationError(
            f"{entity.value.replace('_', ' ').capitalize()} was modified concurrently.",
            {"entity": entity.value, "entity_id": row.id},
        )
    db.refresh(row)
    logger.info(
        "Status transition applied",
        extra={"entity": entity.value, "entity_id": row.id, "from": current.value, "to": target.value},
    )


__all__ = ["StatusEntity", "ALLOWED", "can_transition", "assert_transition", "apply_transition"]
