import hashlib
import hmac

from app.services.signature import compute_payment_signature, verify_payment_signature

SECRET = "test-razorpay-secret"


def test_valid_signature_verifies():
    signature = compute_payment_signature("order_A", "pay_B", SECRET)
    assert verify_payment_signature("order_A", "pay_B", signature, SECRET) is True


def test_signature_is_hmac_of_order_and_payment_ids():
    expected = hmac.new(b"k", b"o|p", hashlib.sha256).hexdigest()
    assert compute_payment_signature("o", "p", "k") == expected
    assert compute_payment_signature("p", "o", "k") != expected


def test_single_character_change_fails():
    signature = compute_payment_signature("order_A", "pay_B", SECRET)
    flipped = ("0" if signature[0] != "0" else "1") + signature[1:]
    assert verify_payment_signature("order_A", "pay_B", flipped, SECRET) is False


def test_wrong_secret_or_ids_fail():
    signature = compute_payment_signature("order_A", "pay_B", SECRET)
    assert verify_payment_signature("order_A", "pay_B", signature, "other-secret") is False
    assert verify_payment_signature("order_A", "pay_C", signature, SECRET) is False
    assert verify_payment_signature("order_X", "pay_B", signature, SECRET) is False


def test_empty_inputs_never_verify():
    assert verify_payment_signature("", "pay_B", "sig", SECRET) is False
    assert verify_payment_signature("order_A", "pay_B", "", SECRET) is False
    assert verify_payment_signature("order_A", "pay_B", "sig", "") is False
