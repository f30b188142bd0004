from decimal import Decimal

import pytest

from app.services.reconciler import reconcile_amount, reconcile_currency, to_minor_units
from app.utils.errors import AmountMismatchError


def test_matching_amount_passes():
    reconcile_amount(25000, Decimal("250.00"))
    reconcile_amount(50000, Decimal("500"))


def test_off_by_one_paisa_is_rejected():
    with pytest.raises(AmountMismatchError) as excinfo:
        reconcile_amount(25001, Decimal("250.00"))
    assert excinfo.value.status_code == 422
    assert excinfo.value.detail["error"]["code"] == "AMOUNT_MISMATCH"


def test_missing_or_garbage_gateway_amount_is_a_mismatch():
    with pytest.raises(AmountMismatchError):
        reconcile_amount(None, Decimal("250.00"))
    with pytest.raises(AmountMismatchError):
        reconcile_amount("not-a-number", Decimal("250.00"))


def test_to_minor_units():
    assert to_minor_units(Decimal("450.00")) == 45000
    assert to_minor_units(Decimal("0.01")) == 1
    with pytest.raises(ValueError):
        to_minor_units(Decimal("1.005"))


def test_currency_must_be_the_settlement_currency():
    reconcile_currency("INR", "INR")
    reconcile_currency("inr", "INR")
    with pytest.raises(AmountMismatchError) as excinfo:
        reconcile_currency("USD", "INR")
    assert excinfo.value.detail["error"]["details"]["gateway_currency"] == "USD"
    with pytest.raises(AmountMismatchError):
        reconcile_currency(None, "INR")
