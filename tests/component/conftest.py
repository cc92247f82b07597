"""
Component Test Layer Configuration

Structure:
    tests/component/
    ├── tdd/         Service behaviour with in-memory dependencies
    └── mocks/       Mock implementations

Usage:
    pytest tests/component -v
    pytest tests/component/tdd/order_service -v
"""
import os
import sys

import pytest

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["ENVIRONMENT"] = "testing"
os.environ["NATS_ENABLED"] = "false"
os.environ.pop("RESEND_API_KEY", None)

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from tests.component.mocks import (
    InMemoryStore,
    MockEventBus,
    MockHttpClient,
    MockTransactionManager,
)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "component: marks tests as component tests"
    )


# =============================================================================
# Database Mocks
# =============================================================================

@pytest.fixture
def store() -> InMemoryStore:
    """Empty in-memory store"""
    return InMemoryStore()


@pytest.fixture
def tx_manager(store: InMemoryStore) -> MockTransactionManager:
    """Transaction manager over the in-memory store"""
    return MockTransactionManager(store)


# =============================================================================
# Event Bus Mocks
# =============================================================================

@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Mock NATS event bus"""
    return MockEventBus()


# =============================================================================
# HTTP Client Mocks
# =============================================================================

@pytest.fixture
def mock_http_client() -> MockHttpClient:
    """Mock httpx client for the email provider"""
    return MockHttpClient()
