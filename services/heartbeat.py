# backend/services/heartbeat.py

from datetime import timedelta

from services.firebase import HEARTBEAT_PATH
from services.state import StateFlow
from utils.time import parse_timestamp, utcnow

# The bridge counts as offline once its heartbeat is this old.
OFFLINE_THRESHOLD = timedelta(seconds=30)


def is_bridge_online(last_seen, now, threshold=OFFLINE_THRESHOLD):
    """
    Liveness of the bridge from its last heartbeat.
    Unreadable or missing timestamps count as offline.
    """
    last_seen = parse_timestamp(last_seen)
    now = parse_timestamp(now)
    if last_seen is None or now is None:
        return False
    return (now - last_seen) < threshold


class HeartbeatMonitor:
    """
    Follows the bridge heartbeat document.

    Liveness is judged when a snapshot arrives and not re-evaluated in
    between: a bridge that stops writing keeps its last verdict until
    the next snapshot or error.
    """

    def __init__(self, store, queue, clock=utcnow, threshold=OFFLINE_THRESHOLD, path=HEARTBEAT_PATH):
        self.store = store
        self.queue = queue
        self.clock = clock
        self.threshold = threshold
        self.path = path
        self.online = StateFlow(False)
        self._subscription = None

    def start(self):
        if self._subscription is None:
            self._subscription = self.store.subscribe(self.path, self._on_snapshot)
        return self._subscription

    def close(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def _on_snapshot(self, snapshot, error):
        self.queue.submit(self.apply, snapshot, error)

    def apply(self, snapshot, error=None):
        if error is not None:
            print(f"WARNING: Heartbeat listen failed: {error}")
            self.online.set(False)
            return

        last_seen = snapshot.get("last_seen") if snapshot is not None and snapshot.exists else None
        self.online.set(is_bridge_online(last_seen, self.clock(), self.threshold))
