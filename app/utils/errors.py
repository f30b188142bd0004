"""Utility helpers for standardized error responses and the domain error kinds."""
from typing import Any

from fastapi import HTTPException, status


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return a standardized error payload."""

    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


class MarketplaceError(HTTPException):
    """Base class for domain failures; rendered by the app-level HTTPException handler.

    Each subclass carries one error ``code`` and one HTTP status so clients and
    monitoring can tell the kinds apart.
    """

    code: str = "INTERNAL_SERVER_ERROR"
    status_code_default: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=self.status_code_default,
            detail=error_response(self.code, message, details),
        )

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(MarketplaceError):
    code = "VALIDATION_ERROR"
    status_code_default = status.HTTP_400_BAD_REQUEST


class SignatureMismatchError(MarketplaceError):
    code = "SIGNATURE_MISMATCH"
    status_code_default = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(MarketplaceError):
    code = "FORBIDDEN"
    status_code_default = status.HTTP_403_FORBIDDEN


class NotFoundError(MarketplaceError):
    code = "NOT_FOUND"
    status_code_default = status.HTTP_404_NOT_FOUND


class DuplicateOperationError(MarketplaceError):
    """The entity is already in the requested terminal state (typically a client retry)."""

    code = "DUPLICATE_OPERATION"
    status_code_default = status.HTTP_409_CONFLICT


class InvalidStateTransitionError(MarketplaceError):
    code = "INVALID_STATE_TRANSITION"
    status_code_default = status.HTTP_409_CONFLICT


class AmountMismatchError(MarketplaceError):
    code = "AMOUNT_MISMATCH"
    status_code_default = status.HTTP_422_UNPROCESSABLE_ENTITY


class UpstreamGatewayError(MarketplaceError):
    """The payment gateway call failed or timed out; no local state was changed."""

    code = "UPSTREAM_GATEWAY_ERROR"
    status_code_default = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str = "Payment gateway request failed.", *, retryable: bool = False) -> None:
        self.retryable = retryable
        super().__init__(message, {"retryable": retryable})


__all__ = [
    "error_response",
    "MarketplaceError",
    "ValidationError",
    "SignatureMismatchError",
    "AuthorizationError",
    "NotFoundError",
    "DuplicateOperationError",
    "InvalidStateTransitionError",
    "AmountMismatchError",
    "UpstreamGatewayError",
]
