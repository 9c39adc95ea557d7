"""
Bridge liveness derived from the heartbeat document.
"""

from datetime import timedelta

import pytest

from services.firebase import HEARTBEAT_PATH
from services.heartbeat import HeartbeatMonitor, is_bridge_online


@pytest.fixture
def monitor(store, queue, clock):
    m = HeartbeatMonitor(store, queue, clock=clock)
    m.start()
    yield m
    m.close()


class TestIsBridgeOnline:
    def test_recent_heartbeat_is_online(self, clock):
        assert is_bridge_online(clock() - timedelta(seconds=29), clock()) is True

    def test_old_heartbeat_is_offline(self, clock):
        assert is_bridge_online(clock() - timedelta(seconds=31), clock()) is False

    def test_exactly_threshold_is_offline(self, clock):
        assert is_bridge_online(clock() - timedelta(milliseconds=30000), clock()) is False

    def test_just_under_threshold_is_online(self, clock):
        assert is_bridge_online(clock() - timedelta(milliseconds=29999), clock()) is True

    def test_missing_last_seen_is_offline(self, clock):
        assert is_bridge_online(None, clock()) is False

    def test_garbage_last_seen_is_offline(self, clock):
        assert is_bridge_online("yesterday", clock()) is False

    def test_epoch_millis_accepted(self, clock):
        millis = int((clock() - timedelta(seconds=5)).timestamp() * 1000)
        assert is_bridge_online(millis, clock()) is True


class TestHeartbeatMonitor:
    def test_absent_document_is_offline(self, monitor, queue):
        queue.flush()
        assert monitor.online.value is False

    def test_fresh_heartbeat_goes_online(self, monitor, store, queue, clock):
        store.set(HEARTBEAT_PATH, {"last_seen": clock() - timedelta(seconds=29)})
        queue.flush()
        assert monitor.online.value is True

    def test_stale_heartbeat_goes_offline(self, monitor, store, queue, clock):
        store.set(HEARTBEAT_PATH, {"last_seen": clock() - timedelta(seconds=29)})
        queue.flush()
        store.set(HEARTBEAT_PATH, {"last_seen": clock() - timedelta(seconds=31)})
        queue.flush()
        assert monitor.online.value is False

    def test_missing_field_is_offline(self, monitor, store, queue):
        store.set(HEARTBEAT_PATH, {"something_else": 1})
        queue.flush()
        assert monitor.online.value is False

    def test_error_forces_offline(self, monitor, store, queue, clock):
        store.set(HEARTBEAT_PATH, {"last_seen": clock()})
        queue.flush()
        assert monitor.online.value is True

        store.fail(HEARTBEAT_PATH, RuntimeError("stream reset"))
        queue.flush()
        assert monitor.online.value is False

    def test_not_reevaluated_without_new_snapshot(self, monitor, store, queue, clock):
        store.set(HEARTBEAT_PATH, {"last_seen": clock()})
        queue.flush()
        clock.advance(120)
        queue.flush()
        assert monitor.online.value is True

    def test_evaluated_against_clock_at_arrival(self, monitor, store, queue, clock):
        last_seen = clock()
        clock.advance(45)
        store.set(HEARTBEAT_PATH, {"last_seen": last_seen})
        queue.flush()
        assert monitor.online.value is False

    def test_close_releases_subscription(self, monitor, store, queue, clock):
        monitor.close()
        store.set(HEARTBEAT_PATH, {"last_seen": clock()})
        queue.flush()
        assert monitor.online.value is False
