"""
Pytest fixtures for payment tests.

Provides users, API clients authenticated with simplejwt tokens, and
payments in each state.

Usage:
    def test_owner_can_read_status(authenticated_client, pending_payment):
        response = authenticated_client.get(
            f"/api/v1/payments/status/{pending_payment.id}/"
        )
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from payments.state_machines import PaymentMethod, PaymentStatus
from payments.tests.factories import PaymentFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create a test user."""
    return UserFactory()


@pytest.fixture
def other_user(db):
    """Create a second user who owns nothing of `user`'s."""
    return UserFactory()


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory():
    """Build an API client carrying a JWT access token for a user."""

    def _create(for_user):
        client = APIClient()
        refresh = RefreshToken.for_user(for_user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _create


@pytest.fixture
def authenticated_client(authenticated_client_factory, user):
    """API client authenticated as `user`."""
    return authenticated_client_factory(user)


# =============================================================================
# Payment Fixtures
# =============================================================================


@pytest.fixture
def pending_payment(db, user):
    """Pending card payment awaiting client confirmation."""
    return PaymentFactory(
        owner=user,
        method=PaymentMethod.CARD,
        provider_reference="pi_pending_123",
    )


@pytest.fixture
def succeeded_payment(db, user):
    """Wallet payment that settled immediately."""
    return PaymentFactory(
        owner=user,
        status=PaymentStatus.SUCCEEDED,
        provider_reference="wallet_settled_123",
    )


@pytest.fixture
def failed_payment(db, user):
    """Declined card payment."""
    return PaymentFactory(
        owner=user,
        method=PaymentMethod.CARD,
        status=PaymentStatus.FAILED,
        provider_reference="pi_declined_123",
        failure_reason="Your card was declined.",
    )
