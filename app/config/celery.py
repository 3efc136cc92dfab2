"""
Celery configuration for the payments backend.

Runs the background side of payment processing:
- Stripe webhook events, processed off the request path
- Periodic retries of failed webhook events
- Polling Stripe for card payments left pending

Periodic schedules live in the database (django-celery-beat) and are
seeded by the payments migrations.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Finds payments.tasks
app.autodiscover_tasks()
