"""Pytest configuration and fixtures for snaxel-query tests."""

import pytest
from fakes import ActivityTracker


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "e2e: End-to-end tests requiring a real browser and network access")
    config.addinivalue_line("markers", "slow: Tests that take longer to run")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def tracker() -> ActivityTracker:
    return ActivityTracker()
