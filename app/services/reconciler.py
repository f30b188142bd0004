"""Amount reconciliation between the gateway ledger and local bills."""
from __future__ import annotations

import logging
from decimal import Decimal

from app.utils.errors import AmountMismatchError

logger = logging.getLogger(__name__)

# INR is the only settlement currency; 1 rupee = 100 paise.
MINOR_UNIT_MULTIPLIER = 100


def _to_decimal(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def to_minor_units(amount) -> int:
    """Convert a major-unit amount to integral minor units.

    Amounts with sub-paise precision cannot be represented and raise ``ValueError``.
    """

    minor = _to_decimal(amount) * MINOR_UNIT_MULTIPLIER
    if minor != minor.to_integral_value():
        raise ValueError(f"Amount {amount} has sub-minor-unit precision")
    return int(minor)


def reconcile_amount(gateway_amount, local_amount) -> None:
    """Raise ``AmountMismatchError`` unless ``gateway_amount == local_amount * 100``."""

    expected = _to_decimal(local_amount) * MINOR_UNIT_MULTIPLIER
    try:
        reported = _to_decimal(gateway_amount)
    except ArithmeticError:
        reported = None
    if reported is None or reported != expected:
        logger.warning(
            "Gateway amount does not match bill amount",
            extra={"gateway_amount": str(gateway_amount), "expected_minor": str(expected)},
        )
        raise AmountMismatchError(
            "Payment amount mismatch.",
            {"gateway_amount": str(gateway_amount), "expected_amount": str(expected)},
        )


def reconcile_currency(gateway_currency, expected_currency: str) -> None:
    """Raise ``AmountMismatchError`` unless the gateway order is in ``expected_currency``.

    The paise multiplier only holds for the settlement currency, so an order in
    any other currency cannot be reconciled against a bill.
    """

    reported = str(gateway_currency or "").strip().upper()
    if reported != expected_currency.upper():
        logger.warning(
            "Gateway currency does not match settlement currency",
            extra={"gateway_currency": gateway_currency, "expected_currency": expected_currency},
        )
        raise AmountMismatchError(
            "Payment currency mismatch.",
            {"gateway_currency": gateway_currency, "expected_currency": expected_currency},
        )


__all__ = ["MINOR_UNIT_MULTIPLIER", "to_minor_units", "reconcile_amount", "reconcile_currency"]
