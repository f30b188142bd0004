"""Razorpay SDK wrapper for order lookup and provider payouts."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Protocol

import razorpay
from razorpay.errors import BadRequestError, GatewayError, ServerError
import requests
from fastapi import HTTPException, status

from app.config import Settings, get_settings
from app.utils.errors import UpstreamGatewayError, error_response

logger = logging.getLogger(__name__)

_RETRYABLE_SDK_ERRORS = (ServerError, GatewayError)
_RETRYABLE_NETWORK_ERRORS = (requests.exceptions.Timeout, requests.exceptions.ConnectionError)


class PaymentGateway(Protocol):
    """Operations the settlement core needs from the hosted payment gateway."""

    def fetch_order(self, order_id: str) -> dict[str, Any]: ...

    def create_order(self, *, amount_minor: int, currency: str, receipt: str, notes: dict[str, str]) -> dict[str, Any]: ...

    def create_payout(
        self,
        *,
        fund_account_id: str,
        amount_minor: int,
        currency: str,
        mode: str,
        notes: dict[str, str],
        idempotency_key: str,
    ) -> dict[str, Any]: ...


class RazorpayClient:
    """Wrapper around the Razorpay Python SDK to isolate gateway concerns."""

    def __init__(self, settings: Settings) -> None:
        """Initialise the SDK client; raise ``RuntimeError`` when misconfigured."""

        self.settings = settings
        if not settings.RAZORPAY_ENABLED:
            raise RuntimeError("Razorpay integration is disabled; enable RAZORPAY_ENABLED to proceed.")
        if not (settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET):
            raise RuntimeError("Razorpay credentials are missing; configure RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET.")

        self._timeout = settings.RAZORPAY_TIMEOUT_SECONDS
        self._max_retries = max(0, settings.RAZORPAY_MAX_RETRIES)
        self._backoff = settings.RAZORPAY_RETRY_BACKOFF_SECONDS
        self._client = razorpay.Client(auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET))

    @classmethod
    def from_env(cls) -> "RazorpayClient":
        """Instantiate a client using the cached application settings."""

        return cls(get_settings())

    def _call(self, operation: str, func: Callable[[], dict[str, Any]], *, retries: int = 0) -> dict[str, Any]:
        attempt = 0
        while True:
            attempt += 1
            try:
                return func()
            except BadRequestError as exc:
                logger.warning("Razorpay rejected request", extra={"operation": operation, "error": str(exc)})
                raise UpstreamGatewayError("Payment gateway rejected the request.", retryable=False) from exc
            except (_RETRYABLE_SDK_ERRORS + _RETRYABLE_NETWORK_ERRORS) as exc:
                if attempt > retries:
                    logger.error(
                        "Razorpay call failed",
                        extra={"operation": operation, "attempts": attempt, "error": str(exc)},
                    )
                    raise UpstreamGatewayError("Payment gateway is unavailable.", retryable=True) from exc
                delay = self._backoff * (2 ** (attempt - 1))
                logger.info(
                    "Retrying Razorpay call",
                    extra={"operation": operation, "attempt": attempt, "delay_seconds": delay},
                )
                time.sleep(delay)
            except requests.exceptions.RequestException as exc:
                logger.error("Razorpay transport error", extra={"operation": operation, "error": str(exc)})
                raise UpstreamGatewayError("Payment gateway request failed.", retryable=False) from exc

    def fetch_order(self, order_id: str) -> dict[str, Any]:
        """Return the gateway's authoritative view of an order (amount in paise)."""

        return self._call(
            "order.fetch",
            lambda: self._client.order.fetch(order_id, timeout=self._timeout),
        )

    def create_order(self, *, amount_minor: int, currency: str, receipt: str, notes: dict[str, str]) -> dict[str, Any]:
        """Create a checkout order; not retried because order creation is not idempotent."""

        data = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1,
            "notes": notes,
        }
        return self._call(
            "order.create",
            lambda: self._client.order.create(data=data, timeout=self._timeout),
        )

    def create_payout(
        self,
        *,
        fund_account_id: str,
        amount_minor: int,
        currency: str,
        mode: str,
        notes: dict[str, str],
        idempotency_key: str,
    ) -> dict[str, Any]:
        """Create a RazorpayX payout to a provider's fund account.

        Every attempt carries the same ``X-Payout-Idempotency`` header, so a retry
        after a timeout cannot pay the provider twice.
        """

        if not self.settings.RAZORPAY_ACCOUNT_NUMBER:
            raise RuntimeError("RAZORPAY_ACCOUNT_NUMBER is required for payouts.")

        data = {
            "account_number": self.settings.RAZORPAY_ACCOUNT_NUMBER,
            "fund_account_id": fund_account_id,
            "amount": amount_minor,
            "currency": currency,
            "mode": mode,
            "purpose": "payout",
            "queue_if_low_balance": True,
            "reference_id": idempotency_key[:40],
            "notes": notes,
        }
        return self._call(
            "payout.create",
            lambda: self._client.post(
                "/v1/payouts",
                data,
                headers={"X-Payout-Idempotency": idempotency_key},
                timeout=self._timeout,
            ),
            retries=self._max_retries,
        )


_gateway: PaymentGateway | None = None


def init_gateway(settings: Settings) -> PaymentGateway:
    """Create the process-wide gateway client once, at startup."""

    global _gateway
    if _gateway is None:
        _gateway = RazorpayClient(settings)
        logger.info("Razorpay client initialised", extra={"env": settings.app_env})
    return _gateway


def reset_gateway() -> None:
    global _gateway
    _gateway = None


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning the shared gateway client."""

    try:
        return init_gateway(get_settings())
    except RuntimeError as exc:
        logger.error("Payment gateway configuration error", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error_response("GATEWAY_NOT_CONFIGURED", str(exc)),
        ) from exc


__all__ = [
    "PaymentGateway",
    "RazorpayClient",
    "init_gateway",
    "reset_gateway",
    "get_payment_gateway",
]
