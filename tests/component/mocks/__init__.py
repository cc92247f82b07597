"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies (database, NATS, HTTP).
"""

from .db_mock import (
    InMemoryStore,
    MockTransaction,
    MockTransactionManager,
    RowLockTransaction,
    RowLockTransactionManager,
)
from .nats_mock import MockEventBus
from .http_mock import MockHttpClient, MockHttpResponse

# Service-specific mocks should be in tests/component/tdd/{service}/mocks.py

__all__ = [
    'InMemoryStore',
    'MockTransaction',
    'MockTransactionManager',
    'RowLockTransaction',
    'RowLockTransactionManager',
    'MockEventBus',
    'MockHttpClient',
    'MockHttpResponse',
]
