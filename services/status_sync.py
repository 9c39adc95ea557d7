# backend/services/status_sync.py

from dataclasses import dataclass, replace

from services.firebase import STATUS_PATH
from services.state import StateFlow
from utils.time import parse_timestamp


@dataclass(frozen=True)
class StatusView:
    is_active: bool = False
    is_armed: bool = False
    led_on: bool = False
    buzzer_on: bool = False
    current_limb: str = None
    session_id: str = None
    session_start_time: object = None


def _flag(data, key):
    value = data.get(key)
    return value if isinstance(value, bool) else False


def _text(data, key):
    value = data.get(key)
    return value if isinstance(value, str) and value else None


def read_status(data):
    """
    Project a raw status document. Missing or malformed fields default,
    they never abort the projection.
    """
    return StatusView(
        is_active=_flag(data, "is_active"),
        is_armed=_flag(data, "is_armed"),
        led_on=_flag(data, "led_on"),
        buzzer_on=_flag(data, "buzzer_on"),
        current_limb=_text(data, "current_limb"),
        session_id=_text(data, "session_id"),
        session_start_time=parse_timestamp(data.get("session_start_time")),
    )


class StatusSynchronizer:
    """
    Mirrors the shared status document into a local StatusView and keeps
    the session timer in step with it.

    The document has several writers (this client and the bridge) and the
    last write wins, so nothing written locally is trusted until it comes
    back in a snapshot.
    """

    def __init__(self, store, queue, timer, path=STATUS_PATH):
        self.store = store
        self.queue = queue
        self.timer = timer
        self.path = path
        self.state = StateFlow(StatusView())
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
            # Connectivity loss, not a remote change: keep last-known flags.
            print(f"WARNING: Status listen failed: {error}")
            self.timer.stop()
            return

        if snapshot is None or not snapshot.exists:
            self.timer.stop()
            return

        view = read_status(snapshot.data)
        if view.is_active and view.session_start_time is not None:
            self.timer.start(view.session_start_time)
        else:
            self.timer.stop()

        self.state.set(view)

    def apply_local(self, **fields):
        """Optimistic local change, overwritten by the next snapshot."""
        self.queue.submit(self.state.update, lambda view: replace(view, **fields))
