"""
Pytest configuration for BountyFlow tests.
"""
import os

import django
from django.conf import settings


def pytest_configure():
    """Configure Django settings before running tests."""
    if not settings.configured:
        os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bountyflow.settings")
        django.setup()


def pytest_collection_modifyitems(config, items):
    # Every test in this project touches the bounty tables
    for item in items:
        if "django_db" not in item.keywords:
            item.add_marker("django_db")
