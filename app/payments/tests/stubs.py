"""
Test doubles for payment providers.

Usage:
    from payments.tests.stubs import StaticProvider, build_orchestrator

    orchestrator = build_orchestrator(card=Unavailable(reason="down"))
"""

from payments.providers import Completed, Confirmed, PaymentProvider
from payments.services import ChargeOrchestrator
from payments.state_machines import PaymentMethod


class StaticProvider(PaymentProvider):
    """Answers every charge with the same outcome and records the requests."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.requests = []

    def charge(self, request):
        self.requests.append(request)
        return self.outcome


class RaisingProvider(PaymentProvider):
    """Raises from charge(), like a provider with a bug or a dropped socket."""

    def __init__(self, exc=None):
        self.exc = exc or ConnectionResetError("connection reset by peer")

    def charge(self, request):
        raise self.exc


def build_orchestrator(card=None, wallet=None, degraded_fallback=False):
    """
    ChargeOrchestrator with static providers.

    Args:
        card: Provider or outcome for CardProvider (default: Confirmed)
        wallet: Provider or outcome for WalletProvider (default: Completed)
        degraded_fallback: Whether Unavailable outcomes settle as degraded
    """
    if card is None:
        card = Confirmed(provider_reference="pi_stub_123", client_token="pi_stub_123_secret")
    if wallet is None:
        wallet = Completed(provider_reference="wallet_stub_123")

    providers = {}
    for method, value in ((PaymentMethod.CARD, card), (PaymentMethod.WALLET, wallet)):
        providers[method] = value if isinstance(value, PaymentProvider) else StaticProvider(value)

    return ChargeOrchestrator(providers=providers, degraded_fallback=degraded_fallback)
