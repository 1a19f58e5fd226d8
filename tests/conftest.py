"""
Pytest Configuration for FleetGuard Tests
Sets SKIP_RATE_LIMIT to disable per-vehicle ingest spacing during tests

IMPORTANT: This must be the FIRST file imported by pytest.
The os.environ must be set BEFORE any test imports happen.
"""

import os

# CRITICAL: Set this BEFORE any other imports
os.environ["SKIP_RATE_LIMIT"] = "1"
os.environ.setdefault("RISK_BATCH_ENABLED", "false")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest

# Import all fixtures
from tests.fixtures.api_fixtures import *  # noqa
from tests.fixtures.database_fixtures import *  # noqa
from tests.fixtures.datastore_fixtures import *  # noqa
from tests.fixtures.fleet_fixtures import *  # noqa


def pytest_configure(config):
    """Called after command line options have been parsed and all plugins loaded."""
    os.environ["SKIP_RATE_LIMIT"] = "1"


@pytest.fixture(autouse=True)
def clean_rate_limits():
    """Each test starts without spacing records."""
    from rate_limit_utils import reset_rate_limits

    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def enable_rate_limiting():
    """Fixture to temporarily enable rate limiting for specific tests."""
    original = os.environ.get("SKIP_RATE_LIMIT")
    os.environ.pop("SKIP_RATE_LIMIT", None)
    yield
    if original:
        os.environ["SKIP_RATE_LIMIT"] = original
    else:
        os.environ["SKIP_RATE_LIMIT"] = "1"
