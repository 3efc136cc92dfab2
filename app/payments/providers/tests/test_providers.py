"""
Tests for payment providers.

Tests cover:
- ChargeRequest validation and minor unit conversion
- CardProvider outcomes for each Stripe result
- WalletProvider references
- The default provider registry
"""

import uuid
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from payments.adapters import PaymentIntentResult, StripeAdapter
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeAuthenticationError,
    StripeCardDeclinedError,
    StripeInsufficientFundsError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)
from payments.providers import (
    CardProvider,
    ChargeRequest,
    Completed,
    Confirmed,
    Declined,
    Unavailable,
    WalletProvider,
    build_default_providers,
)
from payments.providers.card import to_minor_units
from payments.state_machines import PaymentMethod


@pytest.fixture
def charge_request():
    return ChargeRequest(
        payment_id=uuid.uuid4(),
        amount=Decimal("120.50"),
        currency="usd",
    )


@pytest.fixture
def card_adapter():
    """StripeAdapter double that reports itself configured."""
    adapter = MagicMock(spec=StripeAdapter)
    adapter.is_configured = True
    adapter.create_payment_intent.return_value = PaymentIntentResult(
        id="pi_card_123",
        status="requires_payment_method",
        amount_cents=12050,
        currency="usd",
        client_secret="pi_card_123_secret_xyz",
    )
    return adapter


# =============================================================================
# ChargeRequest
# =============================================================================


class TestChargeRequest:
    """Tests for ChargeRequest validation."""

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1.00")])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(ValueError, match="amount must be positive"):
            ChargeRequest(payment_id=uuid.uuid4(), amount=amount, currency="usd")


class TestToMinorUnits:
    """Tests for to_minor_units()."""

    @pytest.mark.parametrize(
        "amount, cents",
        [
            (Decimal("120.50"), 12050),
            (Decimal("0.01"), 1),
            (Decimal("19.99"), 1999),
            (Decimal("0.005"), 1),
        ],
    )
    def test_conversion(self, amount, cents):
        assert to_minor_units(amount) == cents


# =============================================================================
# CardProvider
# =============================================================================


class TestCardProvider:
    """Tests for CardProvider.charge()."""

    def test_confirmed_with_client_secret(self, card_adapter, charge_request):
        """Should return the intent id and client secret."""
        outcome = CardProvider(adapter=card_adapter).charge(charge_request)

        assert outcome == Confirmed(
            provider_reference="pi_card_123",
            client_token="pi_card_123_secret_xyz",
        )

    def test_intent_params(self, card_adapter, charge_request):
        """Should send cents, currency, payment metadata and an idempotency key."""
        CardProvider(adapter=card_adapter).charge(charge_request)

        params = card_adapter.create_payment_intent.call_args.args[0]
        assert params.amount_cents == 12050
        assert params.currency == "usd"
        assert params.metadata == {"payment_id": str(charge_request.payment_id)}
        assert params.idempotency_key.startswith(
            f"create_intent:{charge_request.payment_id}:1:"
        )

    def test_same_payment_same_idempotency_key(self, card_adapter, charge_request):
        provider = CardProvider(adapter=card_adapter)

        provider.charge(charge_request)
        provider.charge(charge_request)

        first, second = card_adapter.create_payment_intent.call_args_list
        assert first.args[0].idempotency_key == second.args[0].idempotency_key

    def test_unconfigured_is_unavailable(self, card_adapter, charge_request):
        """Should not call Stripe without credentials."""
        card_adapter.is_configured = False

        outcome = CardProvider(adapter=card_adapter).charge(charge_request)

        assert outcome == Unavailable(reason="Stripe is not configured")
        card_adapter.create_payment_intent.assert_not_called()

    @pytest.mark.parametrize(
        "error",
        [
            StripeCardDeclinedError("Your card was declined."),
            StripeInsufficientFundsError("Your card has insufficient funds."),
        ],
    )
    def test_refusals_are_declined(self, card_adapter, charge_request, error):
        card_adapter.create_payment_intent.side_effect = error

        outcome = CardProvider(adapter=card_adapter).charge(charge_request)

        assert outcome == Declined(reason=error.message)

    @pytest.mark.parametrize(
        "error",
        [
            StripeRateLimitError("Stripe rate limit exceeded. Please retry."),
            StripeAPIUnavailableError("Could not connect to Stripe. Please retry."),
            StripeTimeoutError("Stripe request timed out. Please retry."),
            StripeAuthenticationError("Stripe authentication failed"),
            StripeInvalidRequestError("Amount must be at least 50 cents"),
        ],
    )
    def test_outages_are_unavailable(self, card_adapter, charge_request, error):
        card_adapter.create_payment_intent.side_effect = error

        outcome = CardProvider(adapter=card_adapter).charge(charge_request)

        assert outcome == Unavailable(reason=error.message)

    @pytest.mark.parametrize(
        "error, level",
        [
            (StripeAPIUnavailableError("Could not connect to Stripe. Please retry."), "WARNING"),
            (StripeInvalidRequestError("Amount must be at least 50 cents"), "ERROR"),
        ],
    )
    def test_non_retryable_errors_logged_as_error(
        self, card_adapter, charge_request, error, level, caplog
    ):
        """Should log transient errors at WARNING and the rest at ERROR."""
        card_adapter.create_payment_intent.side_effect = error

        CardProvider(adapter=card_adapter).charge(charge_request)

        record = next(
            r for r in caplog.records if r.getMessage() == "Card provider unavailable"
        )
        assert record.levelname == level
        assert record.retryable is error.is_retryable

    def test_missing_client_secret_is_unavailable(self, card_adapter, charge_request):
        card_adapter.create_payment_intent.return_value = PaymentIntentResult(
            id="pi_no_secret",
            status="requires_payment_method",
            amount_cents=12050,
            currency="usd",
        )

        outcome = CardProvider(adapter=card_adapter).charge(charge_request)

        assert isinstance(outcome, Unavailable)


# =============================================================================
# WalletProvider
# =============================================================================


class TestWalletProvider:
    """Tests for WalletProvider.charge()."""

    def test_completes_immediately(self, charge_request):
        outcome = WalletProvider().charge(charge_request)

        assert isinstance(outcome, Completed)
        assert outcome.provider_reference.startswith("wallet_")

    def test_references_are_unique(self, charge_request):
        provider = WalletProvider()

        assert (
            provider.charge(charge_request).provider_reference
            != provider.charge(charge_request).provider_reference
        )


class TestDefaultProviders:
    def test_one_provider_per_method(self):
        providers = build_default_providers()

        assert isinstance(providers[PaymentMethod.CARD], CardProvider)
        assert isinstance(providers[PaymentMethod.WALLET], WalletProvider)
