"""
Payment providers.

Each PaymentMethod maps to one PaymentProvider. The orchestrator picks
the provider from the method the caller sent.

Usage:
    from payments.providers import build_default_providers, ChargeRequest

    providers = build_default_providers()
    outcome = providers[PaymentMethod.WALLET].charge(
        ChargeRequest(payment_id=payment.id, amount=Decimal("10.00"), currency="usd")
    )
"""

from __future__ import annotations

from payments.providers.base import (
    ChargeOutcome,
    ChargeRequest,
    Completed,
    Confirmed,
    Declined,
    PaymentProvider,
    Unavailable,
)
from payments.providers.card import CardProvider
from payments.providers.wallet import WalletProvider
from payments.state_machines import PaymentMethod


def build_default_providers() -> dict[str, PaymentProvider]:
    """Registry with one settings-configured provider per PaymentMethod."""
    return {
        PaymentMethod.CARD: CardProvider(),
        PaymentMethod.WALLET: WalletProvider(),
    }


__all__ = [
    "CardProvider",
    "ChargeOutcome",
    "ChargeRequest",
    "Completed",
    "Confirmed",
    "Declined",
    "PaymentProvider",
    "Unavailable",
    "WalletProvider",
    "build_default_providers",
]
