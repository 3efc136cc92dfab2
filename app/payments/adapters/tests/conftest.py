"""
Pytest fixtures for Stripe adapter tests.

This module provides fixtures for testing the Stripe adapter, including
mock Stripe API responses, error conditions, and test data.

Sections:
    - Test Data Fixtures
    - Mock Stripe Response Fixtures
    - Mock Stripe Error Fixtures
    - Mock Stripe Client Fixtures
"""

import uuid
from dataclasses import dataclass
from typing import Any
from unittest.mock import MagicMock

import pytest
import stripe

from payments.adapters import StripeAdapter


# =============================================================================
# Test Data Fixtures
# =============================================================================


@pytest.fixture
def payment_id():
    """Generate a random payment UUID for testing."""
    return uuid.uuid4()


@pytest.fixture
def trace_id():
    """Generate a trace ID for testing."""
    return f"trace-{uuid.uuid4().hex[:16]}"


@pytest.fixture
def webhook_secret():
    return "whsec_test_secret_123"


# =============================================================================
# Mock Stripe Response Fixtures
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with to_dict support."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@pytest.fixture
def mock_payment_intent():
    """Create a mock PaymentIntent response."""

    def _create(
        id: str = "pi_test123456",
        status: str = "requires_payment_method",
        amount: int = 12050,
        currency: str = "usd",
        client_secret: str | None = "pi_test123456_secret_abc123",
        metadata: dict | None = None,
        last_payment_error: MockStripeObject | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "payment_intent",
                "status": status,
                "amount": amount,
                "currency": currency,
                "client_secret": client_secret,
                "metadata": metadata or {},
                "last_payment_error": last_payment_error,
            }
        )

    return _create


# =============================================================================
# Mock Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def card_error():
    """Create a Stripe CardError."""

    def _create(
        message: str = "Your card was declined.",
        code: str = "card_declined",
        decline_code: str | None = "generic_decline",
    ) -> stripe.CardError:
        error = stripe.CardError(message, None, code)
        # Not settable through the constructor without a response body
        error.decline_code = decline_code
        return error

    return _create


@pytest.fixture
def insufficient_funds_error(card_error):
    """Create a Stripe CardError for insufficient funds."""
    return card_error(
        message="Your card has insufficient funds.",
        decline_code="insufficient_funds",
    )


@pytest.fixture
def invalid_request_error():
    """Create a Stripe InvalidRequestError."""
    return stripe.InvalidRequestError(
        "No such payment_intent: 'pi_missing'",
        "intent",
        code="resource_missing",
    )


@pytest.fixture
def rate_limit_error():
    """Create a Stripe RateLimitError."""
    return stripe.RateLimitError("Too many requests hit the API too quickly.")


@pytest.fixture
def api_connection_error():
    """Create a Stripe APIConnectionError."""
    return stripe.APIConnectionError("Could not connect to Stripe.")


@pytest.fixture
def timeout_error():
    """Create a Stripe APIConnectionError caused by a read timeout."""
    return stripe.APIConnectionError("Request timed out after 10 seconds.")


@pytest.fixture
def api_error():
    """Create a Stripe APIError."""
    return stripe.APIError("Something went wrong on Stripe's end.")


@pytest.fixture
def authentication_error():
    """Create a Stripe AuthenticationError."""
    return stripe.AuthenticationError("Invalid API Key provided: sk_test_****")


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@pytest.fixture
def mock_stripe_client(mock_payment_intent):
    """StripeClient double with successful payment intent calls."""
    client = MagicMock()
    client.v1.payment_intents.create.return_value = mock_payment_intent()
    client.v1.payment_intents.retrieve.return_value = mock_payment_intent()
    return client


@pytest.fixture
def adapter(mock_stripe_client, webhook_secret):
    """StripeAdapter wired to the mock client."""
    return StripeAdapter(
        api_key="sk_test_123",
        webhook_secret=webhook_secret,
        client=mock_stripe_client,
    )
