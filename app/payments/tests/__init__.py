"""
Tests for the payments app.

- test_models.py: Payment transitions and WebhookEvent helpers
- test_views.py: charge, status and history endpoints

Service, provider, adapter and webhook tests live beside their packages.
"""
