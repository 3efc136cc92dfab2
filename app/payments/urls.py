"""
URL configuration for the payments app.

Routes:
    - POST /charge/ - Create a charge
    - GET /status/<uuid>/ - Payment status
    - GET /user/ - Caller's payments
    - POST /webhooks/stripe/ - Stripe webhook endpoint

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments.views import ChargeView, PaymentStatusView, UserPaymentListView
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    path("charge/", ChargeView.as_view(), name="charge"),
    path("status/<uuid:payment_id>/", PaymentStatusView.as_view(), name="status"),
    path("user/", UserPaymentListView.as_view(), name="user_payments"),
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
]
