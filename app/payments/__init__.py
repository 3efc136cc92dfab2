"""
Payments app: charge collection for tax filings.

This app handles:
- Charge requests through interchangeable providers (card, wallet)
- Provisional Payment records written before any provider call
- Reconciliation from provider outcomes, Stripe webhooks and polling
- Owner-scoped status lookup and payment history

Related apps:
    - authentication: User model for payment ownership

Usage:
    from payments.services import ChargeOrchestrator

    result = ChargeOrchestrator().create_charge(user, "120.50", "CardProvider")
"""
