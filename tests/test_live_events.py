"""
Live event window: classification, gauge updates and the 5-entry log.
"""

from datetime import timedelta

import pytest

from services.firebase import LIVE_EVENT_PATH
from services.live_events import (
    EVENT_DESCRIPTORS,
    IMU_ABRUPT_ALERT,
    LED_MANUAL_ON,
    PIR_MOTION,
    LiveEventWindow,
    append_event,
    classify_event,
    read_live_event,
)


@pytest.fixture
def window(store, queue, clock):
    w = LiveEventWindow(store, queue, clock=clock)
    w.start()
    yield w
    w.close()


def _types(window):
    return [logged.event.event_type for logged in window.state.value.events]


class TestClassification:
    def test_known_tags(self):
        assert classify_event(IMU_ABRUPT_ALERT).severity == "alert"
        assert classify_event(PIR_MOTION).label == "PIR motion"
        assert classify_event(LED_MANUAL_ON).severity == "manual"

    def test_every_known_tag_has_distinct_label(self):
        labels = [d.label for d in EVENT_DESCRIPTORS.values()]
        assert len(labels) == len(set(labels))

    def test_unknown_tag_falls_back_to_info(self):
        descriptor = classify_event("IMU_SOMETHING_NEW")
        assert descriptor.icon == "info"
        assert descriptor.label == "IMU_SOMETHING_NEW"


class TestReadLiveEvent:
    def test_defaults(self):
        event = read_live_event({})
        assert event.event_type == ""
        assert event.angle == 0.0
        assert event.progress == 0
        assert event.limb is None

    def test_progress_clamped(self):
        assert read_live_event({"progress": 140}).progress == 100
        assert read_live_event({"progress": -3}).progress == 0
        assert read_live_event({"progress": "n/a"}).progress == 0


class TestAppendEvent:
    def test_keeps_last_entries(self):
        assert append_event((1, 2, 3, 4, 5), 6) == (2, 3, 4, 5, 6)


class TestLiveEventWindow:
    def test_gauge_updates_without_event(self, window, store, queue, clock):
        store.set(LIVE_EVENT_PATH, {"eventType": "", "timestamp": clock(), "angle": 42.5, "progress": 60})
        queue.flush()

        view = window.state.value
        assert view.angle == 42.5
        assert view.progress == 60
        assert view.events == ()

    def test_discrete_event_logged(self, window, store, queue, clock):
        store.set(LIVE_EVENT_PATH, {
            "eventType": IMU_ABRUPT_ALERT, "timestamp": clock(), "angle": 10, "progress": 5, "limb": "knee",
        })
        queue.flush()

        (logged,) = window.state.value.events
        assert logged.event.event_type == IMU_ABRUPT_ALERT
        assert logged.event.limb == "knee"
        assert logged.descriptor.severity == "alert"

    def test_window_keeps_last_five_in_arrival_order(self, window, store, queue, clock):
        for i in range(7):
            store.set(LIVE_EVENT_PATH, {
                "eventType": f"EVENT_{i}",
                "timestamp": clock() + timedelta(seconds=i),
            })
        queue.flush()

        assert _types(window) == ["EVENT_2", "EVENT_3", "EVENT_4", "EVENT_5", "EVENT_6"]

    def test_redelivered_snapshot_logged_once(self, window, store, queue, clock):
        snapshot = {"eventType": PIR_MOTION, "timestamp": clock(), "angle": 1.0}
        store.set(LIVE_EVENT_PATH, snapshot)
        store.set(LIVE_EVENT_PATH, dict(snapshot, angle=2.0))
        queue.flush()

        assert _types(window) == [PIR_MOTION]
        assert window.state.value.angle == 2.0

    def test_same_type_new_timestamp_logged_again(self, window, store, queue, clock):
        store.set(LIVE_EVENT_PATH, {"eventType": PIR_MOTION, "timestamp": clock()})
        store.set(LIVE_EVENT_PATH, {"eventType": PIR_MOTION, "timestamp": clock() + timedelta(seconds=1)})
        queue.flush()

        assert _types(window) == [PIR_MOTION, PIR_MOTION]

    def test_error_leaves_window_untouched(self, window, store, queue, clock):
        store.set(LIVE_EVENT_PATH, {"eventType": PIR_MOTION, "timestamp": clock(), "angle": 3.0})
        queue.flush()
        before = window.state.value

        store.fail(LIVE_EVENT_PATH, RuntimeError("stream reset"))
        queue.flush()
        assert window.state.value == before

    def test_local_events_share_the_window(self, window, store, queue, clock):
        for i in range(4):
            store.set(LIVE_EVENT_PATH, {"eventType": f"EVENT_{i}", "timestamp": clock() + timedelta(seconds=i)})
        queue.flush()

        event = window.record_local(LED_MANUAL_ON)
        window.record_local("BUZZER_MANUAL_OFF")
        queue.flush()

        assert event.local is True
        assert _types(window) == ["EVENT_1", "EVENT_2", "EVENT_3", LED_MANUAL_ON, "BUZZER_MANUAL_OFF"]
