"""Tests for the payment exception hierarchy."""

from core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from payments.exceptions import (
    InvalidStateTransitionError,
    PaymentAccessDeniedError,
    PaymentNotFoundError,
    PaymentValidationError,
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    UnsupportedPaymentMethodError,
)


class TestPaymentExceptionHierarchy:
    """Payment errors can be caught by the generic core categories."""

    def test_validation_errors(self):
        for exc in (PaymentValidationError("bad"), UnsupportedPaymentMethodError("bad")):
            assert isinstance(exc, ValidationError)
            assert exc.http_status == 400

    def test_lookup_and_access_errors(self):
        assert isinstance(PaymentNotFoundError("missing"), NotFoundError)
        assert isinstance(PaymentAccessDeniedError("not yours"), PermissionDeniedError)
        assert isinstance(InvalidStateTransitionError("terminal"), ConflictError)

    def test_provider_errors_are_external_service_errors(self):
        exc = StripeAPIUnavailableError("Stripe is down")

        assert isinstance(exc, ExternalServiceError)
        assert exc.http_status == 502
        assert exc.error_code == "STRIPE_UNAVAILABLE"

    def test_keeps_own_error_code(self):
        """Should use the payment code, not the generic category code."""
        exc = PaymentValidationError("Amount must be positive")

        assert exc.to_dict()["error_code"] == "INVALID_REQUEST"
        assert StripeCardDeclinedError("declined").is_retryable is False
