"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentValidationError - Malformed or missing charge input (400, a ValidationError)
    │   └── UnsupportedPaymentMethodError - Unknown payment method (400)
    ├── PaymentNotFoundError - Payment lookup failures (404)
    ├── PaymentAccessDeniedError - Caller doesn't own the payment (403)
    ├── PaymentPersistenceError - Provisional record couldn't be written (500)
    └── PaymentProcessingError - Provider-side failures (an ExternalServiceError)
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInsufficientFundsError - Insufficient funds (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeAuthenticationError - Bad API key (permanent, operational)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (transient, retry)

    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

Provider errors never reach API callers directly: providers translate
them into charge outcomes (Declined / Unavailable) and the orchestrator
reconciles the payment from the outcome.

Usage:
    from payments.exceptions import PaymentNotFoundError

    raise PaymentNotFoundError(
        f"Payment {payment_id} not found",
        details={"payment_id": str(payment_id)},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Example:
        try:
            orchestrator.create_charge(user, amount, method)
        except PaymentError as e:
            return Response(e.to_dict(), status=e.http_status)
    """

    default_error_code: str = "PAYMENT_ERROR"
    http_status: int = 400


class PaymentValidationError(PaymentError, ValidationError):
    """
    Raised when a charge request is malformed.

    Use for:
    - Missing amount
    - Non-numeric, zero or negative amount
    - More than two decimal places

    Raised before any Payment is written.
    """

    default_error_code: str = "INVALID_REQUEST"
    http_status: int = 400


class UnsupportedPaymentMethodError(PaymentValidationError):
    """
    Raised when the requested payment method isn't a known provider.

    Example:
        raise UnsupportedPaymentMethodError(
            "Unsupported payment method: Bitcoin",
            details={"payment_method": "Bitcoin", "supported": ["CardProvider", "WalletProvider"]},
        )
    """

    default_error_code: str = "UNSUPPORTED_PAYMENT_METHOD"
    http_status: int = 400


class PaymentNotFoundError(PaymentError, NotFoundError):
    """Raised when no Payment exists for the requested id."""

    default_error_code: str = "PAYMENT_NOT_FOUND"
    http_status: int = 404


class PaymentAccessDeniedError(PaymentError, PermissionDeniedError):
    """
    Raised when the caller isn't the Payment's owner.

    Note:
        Existence is checked first, so a 403 reveals that the id exists.
    """

    default_error_code: str = "PAYMENT_ACCESS_DENIED"
    http_status: int = 403


class PaymentPersistenceError(PaymentError):
    """
    Raised when the provisional Payment can't be written.

    The provider is never contacted after this error, so no charge
    exists without a matching record.
    """

    default_error_code: str = "PAYMENT_PERSISTENCE_FAILURE"
    http_status: int = 500


class PaymentProcessingError(PaymentError, ExternalServiceError):
    """Raised when a payment provider fails to process a request."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"
    http_status: int = 502


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
        is_retryable: Whether the operation can be retried

    Use is_retryable to tell a decline (False) from an outage (True).
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """
    Card was declined by the issuing bank.

    The decline_code attribute holds the specific reason
    (generic_decline, lost_card, expired_card, incorrect_cvc, ...).
    """

    default_error_code: str = "CARD_DECLINED"
    is_retryable: bool = False


class StripeInsufficientFundsError(StripeError):
    """Insufficient funds on the payment method."""

    default_error_code: str = "INSUFFICIENT_FUNDS"
    is_retryable: bool = False


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe, or a bad webhook signature.

    This usually indicates a bug in our code, not a user error.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


class StripeAuthenticationError(StripeError):
    """
    Stripe rejected our API key.

    Permanent until the key is fixed; logged at CRITICAL.
    """

    default_error_code: str = "STRIPE_AUTHENTICATION_FAILED"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    Covers network connectivity issues, Stripe 5xx responses and
    DNS/TLS failures.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out (STRIPE_API_TIMEOUT_SECONDS).

    IMPORTANT: The operation may have succeeded on Stripe's side.
    Retrying with the same idempotency key returns the original result.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# State Machine Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a payment state transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed, e.g. confirming a payment
    that already succeeded or failed.

    Example:
        raise InvalidStateTransitionError(
            f"Cannot confirm payment in '{payment.status}' state",
            details={"current_state": payment.status, "target_state": "succeeded"},
        )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Payment domain
    "PaymentError",
    "PaymentValidationError",
    "UnsupportedPaymentMethodError",
    "PaymentNotFoundError",
    "PaymentAccessDeniedError",
    "PaymentPersistenceError",
    "PaymentProcessingError",
    # Stripe-specific
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInsufficientFundsError",
    "StripeInvalidRequestError",
    "StripeAuthenticationError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    # State machine
    "InvalidStateTransitionError",
]
