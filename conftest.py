"""
Root pytest configuration for the Django project.

This module makes sure the settings module is set when pytest is started
from the repository root. Django itself is configured by pytest-django;
project-wide hooks live in app/conftest.py and app-specific fixtures in
each app's tests/conftest.py.
"""

import os

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
