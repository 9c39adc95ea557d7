"""
In-memory document store and the subscription handle.
"""

import pytest
from google.api_core import exceptions as google_exceptions

from services.state import StateFlow, UpdateQueue


class TestMemoryStore:
    def test_subscribe_delivers_current_then_changes(self, store):
        seen = []
        store.set("system_status/status", {"led_on": True})
        sub = store.subscribe("system_status/status", lambda s, e: seen.append((s, e)))
        store.update("system_status/status", {"led_on": False})

        assert [s.get("led_on") for s, _ in seen] == [True, False]
        assert all(e is None for _, e in seen)
        sub.close()

    def test_update_missing_document_raises_not_found(self, store):
        with pytest.raises(google_exceptions.NotFound):
            store.update("system_status/status", {"is_armed": False})

    def test_closed_subscription_stops_delivery(self, store):
        seen = []
        with store.subscribe("a/b", lambda s, e: seen.append(s)) as sub:
            assert sub.closed is False
            store.set("a/b", {"x": 1})
        assert sub.closed is True
        store.set("a/b", {"x": 2})
        assert len(seen) == 2

    def test_fail_reaches_subscribers(self, store):
        errors = []
        store.subscribe("a/b", lambda s, e: errors.append(e))
        store.fail("a/b", RuntimeError("boom"))
        assert isinstance(errors[-1], RuntimeError)

    def test_get_with_filters_and_order(self, store):
        store.set("history/a", {"startTime": 1_700_000_000, "limb": "arm"})
        store.set("history/b", {"startTime": 1_700_000_500, "limb": "leg"})
        store.set("history/c", {"limb": "arm"})

        # Like Firestore, ordering leaves out documents without the field.
        ordered = store.get("history", order_by="startTime", descending=True)
        assert [s.id for s in ordered] == ["b", "a"]

        arms = store.get("history", filters=[("limb", "==", "arm")])
        assert sorted(s.id for s in arms) == ["a", "c"]

    def test_collection_excludes_nested_paths(self, store):
        store.set("history/a", {})
        store.set("history/a/events/e1", {})
        store.set("history_archive/z", {})
        assert [s.id for s in store.get("history")] == ["a"]

    def test_snapshot_is_a_copy(self, store):
        store.set("a/b", {"events": [1]})
        store.snapshot("a/b").data["events"].append(2)
        assert store.snapshot("a/b").get("events") == [1]


class TestStateHolders:
    def test_update_queue_runs_in_order(self):
        queue = UpdateQueue()
        seen = []
        for i in range(20):
            queue.submit(seen.append, i)
        queue.flush()
        queue.close()
        assert seen == list(range(20))

    def test_submit_after_close_is_ignored(self):
        queue = UpdateQueue()
        queue.close()
        assert queue.submit(print, "late") is None

    def test_state_flow_notifies_listeners(self):
        flow = StateFlow(0)
        seen = []
        unsubscribe = flow.subscribe(seen.append)
        flow.set(1)
        flow.update(lambda v: v + 1)
        unsubscribe()
        flow.set(5)
        assert seen == [1, 2]
        assert flow.value == 5
