"""
Project-wide pytest configuration.

Adjusts settings for a fast, self-contained test run and tags tests as
unit or integration by module name. Payment fixtures live in
payments/conftest.py and the per-package tests/conftest.py files.
"""

import os

import django
import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

UNIT_MODULES = {
    "test_exceptions.py",
    "test_models.py",
    "test_managers.py",
    "test_providers.py",
    "test_stripe_adapter.py",
}


def pytest_configure():
    django.setup()

    from django.conf import settings

    # Throttles would trip on repeated charge requests within one test
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"},
    }


def pytest_collection_modifyitems(items):
    """
    Mark tests unit or integration unless they carry a marker already.

    Anything outside UNIT_MODULES touches the database, views or Celery
    tasks and counts as integration.
    """
    for item in items:
        if {m.name for m in item.iter_markers()} & {"unit", "integration", "e2e"}:
            continue

        if item.path.name in UNIT_MODULES:
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)
