"""
Pytest fixtures for the backend test suite.

Everything runs against the in-memory store; no Firebase project needed.
"""

import pytest

from helpers import FakeClock
from services.memory_store import MemoryStore
from services.state import UpdateQueue


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def queue():
    q = UpdateQueue(name="test-owner")
    yield q
    q.close()
