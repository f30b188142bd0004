"""Retry and idempotency behaviour of the Razorpay client wrapper."""
import pytest
import requests
from razorpay.errors import BadRequestError, ServerError

from app.config import Settings
from app.services import psp_razorpay
from app.services.psp_razorpay import RazorpayClient
from app.utils.errors import UpstreamGatewayError


def _settings(**overrides) -> Settings:
    values = {
        "RAZORPAY_ENABLED": True,
        "RAZORPAY_KEY_ID": "rzp_test_key",
        "RAZORPAY_KEY_SECRET": "test-razorpay-secret",
        "RAZORPAY_ACCOUNT_NUMBER": "7878780080316316",
        "RAZORPAY_TIMEOUT_SECONDS": 10.0,
        "RAZORPAY_MAX_RETRIES": 2,
        "RAZORPAY_RETRY_BACKOFF_SECONDS": 0.5,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    delays: list[float] = []
    monkeypatch.setattr(psp_razorpay.time, "sleep", delays.append)
    return delays


def _payout(client: RazorpayClient, key: str = "transfer:1") -> dict:
    return client.create_payout(
        fund_account_id="fa_123",
        amount_minor=45000,
        currency="INR",
        mode="IMPS",
        notes={"transfer_id": "1"},
        idempotency_key=key,
    )


def test_payout_retries_server_errors_with_the_same_key(monkeypatch, sleeps):
    client = RazorpayClient(_settings())
    calls = []
    outcomes = [ServerError("upstream 500"), ServerError("upstream 502"), {"id": "pout_1", "status": "processing"}]

    def fake_post(path, data, **options):
        calls.append((path, options["headers"]["X-Payout-Idempotency"], options["timeout"], data["amount"]))
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(client._client, "post", fake_post)

    payout = _payout(client)
    assert payout["id"] == "pout_1"
    assert calls == [("/v1/payouts", "transfer:1", 10.0, 45000)] * 3
    assert sleeps == [0.5, 1.0]


def test_payout_retries_timeouts_then_gives_up(monkeypatch, sleeps):
    client = RazorpayClient(_settings(RAZORPAY_MAX_RETRIES=1))
    keys = []

    def fake_post(path, data, **options):
        keys.append(options["headers"]["X-Payout-Idempotency"])
        raise requests.exceptions.Timeout("read timed out")

    monkeypatch.setattr(client._client, "post", fake_post)

    with pytest.raises(UpstreamGatewayError) as excinfo:
        _payout(client, key="transfer:9")
    assert excinfo.value.retryable is True
    assert excinfo.value.status_code == 502
    assert keys == ["transfer:9", "transfer:9"]
    assert sleeps == [0.5]


def test_bad_request_is_not_retried(monkeypatch, sleeps):
    client = RazorpayClient(_settings())
    calls = []

    def fake_post(path, data, **options):
        calls.append(path)
        raise BadRequestError("fund account is invalid")

    monkeypatch.setattr(client._client, "post", fake_post)

    with pytest.raises(UpstreamGatewayError) as excinfo:
        _payout(client)
    assert excinfo.value.retryable is False
    assert excinfo.value.detail["error"]["details"] == {"retryable": False}
    assert calls == ["/v1/payouts"]
    assert sleeps == []


def test_fetch_order_passes_timeout_and_is_not_retried(monkeypatch, sleeps):
    client = RazorpayClient(_settings(RAZORPAY_TIMEOUT_SECONDS=3.5))
    calls = []

    def fake_fetch(order_id, **kwargs):
        calls.append((order_id, kwargs["timeout"]))
        if len(calls) == 1:
            return {"id": order_id, "amount": 50000, "currency": "INR"}
        raise ServerError("upstream 503")

    monkeypatch.setattr(client._client.order, "fetch", fake_fetch)

    assert client.fetch_order("order_abc")["amount"] == 50000
    with pytest.raises(UpstreamGatewayError) as excinfo:
        client.fetch_order("order_abc")
    assert excinfo.value.retryable is True
    assert calls == [("order_abc", 3.5), ("order_abc", 3.5)]
    assert sleeps == []


def test_payout_requires_account_number():
    client = RazorpayClient(_settings(RAZORPAY_ACCOUNT_NUMBER=None))
    with pytest.raises(RuntimeError):
        _payout(client)


def test_misconfigured_client_refuses_to_start():
    with pytest.raises(RuntimeError):
        RazorpayClient(_settings(RAZORPAY_ENABLED=False))
    with pytest.raises(RuntimeError):
        RazorpayClient(_settings(RAZORPAY_KEY_SECRET=""))
