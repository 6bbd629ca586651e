"""
Pytest fixtures for balance tests.

This module provides fixtures for testing the balance engine, organized
into logical sections for clarity.

Sections:
    - Service Fixtures: Engine, store and writer wired to test settings
    - Catalog Fixtures: Services users can pay for
    - Account Fixtures: Pre-funded user accounts
    - API Fixtures: DRF test client
"""

import datetime
import logging

import pytest
from rest_framework.test import APIClient

from balance.conf import BalanceSettings
from balance.reports import ReportWriter
from balance.repository import DjangoBalanceStore
from balance.services import BalanceService
from balance.tests.factories import AccountFactory, ServiceFactory

# ==========================================================================
# Service Fixtures
# ==========================================================================


@pytest.fixture
def balance_settings(reports_dir):
    """Engine settings pointing at the default database and a temp reports dir."""
    return BalanceSettings(reports_dir=reports_dir)


@pytest.fixture
def store(db, balance_settings):
    return DjangoBalanceStore(balance_settings)


@pytest.fixture
def writer(balance_settings):
    return ReportWriter(balance_settings)


@pytest.fixture
def balance_service(store, balance_settings, writer):
    """BalanceService using the Django store."""
    return BalanceService(store=store, settings=balance_settings, writer=writer)


# ==========================================================================
# Catalog Fixtures
# ==========================================================================


@pytest.fixture
def catalog_service(db):
    """A paid service titled 'Massage'."""
    return ServiceFactory(title="Massage")


# ==========================================================================
# Account Fixtures
# ==========================================================================


@pytest.fixture
def funded_account(db):
    """User 1 with a balance of 100 and nothing reserved."""
    return AccountFactory(id=1, balance=100)


@pytest.fixture
def second_account(db):
    """User 2 with a balance of 10."""
    return AccountFactory(id=2, balance=10)


# ==========================================================================
# Test Data Fixtures
# ==========================================================================


@pytest.fixture
def business_date():
    return datetime.date(2022, 10, 1)


# ==========================================================================
# API Fixtures
# ==========================================================================


@pytest.fixture
def api_client():
    """Unauthenticated DRF test client (the API is internal)."""
    return APIClient()


# ==========================================================================
# Logging Fixtures
# ==========================================================================


@pytest.fixture
def balance_logs(caplog):
    """
    Capture records from the ``balance`` loggers at INFO.

    The ``balance`` logger does not propagate to root, so caplog's handler
    is attached to it directly.
    """
    logger = logging.getLogger("balance")
    logger.addHandler(caplog.handler)
    caplog.set_level(logging.INFO, logger="balance")
    yield caplog
    logger.removeHandler(caplog.handler)
