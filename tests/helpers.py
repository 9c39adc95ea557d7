"""
Shared helpers for the test suite.
"""

import threading
import time
from datetime import datetime, timedelta, timezone


class FakeClock:
    """Controllable replacement for utils.time.utcnow."""

    def __init__(self, start=None):
        self._now = start or datetime(2024, 1, 2, 10, 0, 0, tzinfo=timezone.utc)
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            return self._now

    def advance(self, seconds):
        with self._lock:
            self._now = self._now + timedelta(seconds=seconds)
        return self._now


def wait_for(predicate, timeout=2.0, interval=0.01):
    """Poll until `predicate()` is truthy or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())
