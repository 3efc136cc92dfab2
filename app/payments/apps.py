"""
Payments app configuration.

This app provides charge processing:
- Payment records with an FSM-managed status
- Card (Stripe) and wallet providers
- Stripe webhook handling and pending payment reconciliation
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
