# backend/services/live_events.py

from dataclasses import dataclass, replace

from services.firebase import LIVE_EVENT_PATH
from services.state import StateFlow
from utils.time import parse_timestamp, utcnow

WINDOW_SIZE = 5

# ===============================
# Event Vocabulary
# ===============================
IMU_ABRUPT_ALERT = "IMU_ALERTA_BRUSCO"
PIR_MOTION = "PIR_MOVIMIENTO"
IMU_VERTICAL = "IMU_VERTICAL"
IMU_HORIZONTAL = "IMU_HORIZONTAL"
LED_MANUAL_ON = "LED_MANUAL_ON"
LED_MANUAL_OFF = "LED_MANUAL_OFF"
BUZZER_MANUAL_ON = "BUZZER_MANUAL_ON"
BUZZER_MANUAL_OFF = "BUZZER_MANUAL_OFF"


@dataclass(frozen=True)
class EventDescriptor:
    icon: str
    label: str
    color: str
    severity: str = "info"


EVENT_DESCRIPTORS = {
    IMU_ABRUPT_ALERT: EventDescriptor("warning", "Abrupt movement alert", "error", "alert"),
    PIR_MOTION: EventDescriptor("directions_run", "PIR motion", "on_surface"),
    IMU_VERTICAL: EventDescriptor("stay_current_portrait", "IMU vertical", "gray"),
    IMU_HORIZONTAL: EventDescriptor("stay_current_landscape", "IMU horizontal", "gray"),
    LED_MANUAL_ON: EventDescriptor("flash_on", "LED on", "blue", "manual"),
    LED_MANUAL_OFF: EventDescriptor("flash_off", "LED off", "gray", "manual"),
    BUZZER_MANUAL_ON: EventDescriptor("notifications_active", "Buzzer on", "blue", "manual"),
    BUZZER_MANUAL_OFF: EventDescriptor("notifications_off", "Buzzer off", "gray", "manual"),
}


def classify_event(event_type):
    """
    Presentation descriptor for an event tag. Unknown tags get a generic
    info descriptor labelled with the raw tag.
    """
    descriptor = EVENT_DESCRIPTORS.get(event_type)
    if descriptor is not None:
        return descriptor
    return EventDescriptor("info", str(event_type), "gray")


@dataclass(frozen=True)
class LiveEvent:
    event_type: str = ""
    timestamp: object = None
    angle: float = 0.0
    progress: int = 0
    limb: str = None
    local: bool = False


@dataclass(frozen=True)
class LoggedEvent:
    event: LiveEvent
    descriptor: EventDescriptor


@dataclass(frozen=True)
class LiveView:
    events: tuple = ()
    angle: float = 0.0
    progress: int = 0


def _float(value, default=0.0):
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _progress(value):
    if isinstance(value, bool):
        return 0
    try:
        return min(max(int(value), 0), 100)
    except (TypeError, ValueError):
        return 0


def read_live_event(data):
    event_type = data.get("eventType")
    limb = data.get("limb")
    return LiveEvent(
        event_type=event_type if isinstance(event_type, str) else "",
        timestamp=parse_timestamp(data.get("timestamp")),
        angle=_float(data.get("angle")),
        progress=_progress(data.get("progress")),
        limb=limb if isinstance(limb, str) else None,
    )


def append_event(events, entry, size=WINDOW_SIZE):
    """Append and keep only the newest `size` entries, oldest first."""
    events = tuple(events) + (entry,)
    return events[-size:] if size > 0 else ()


class LiveEventWindow:
    """
    Folds the overwritten-in-place live event document into a bounded,
    arrival-ordered log and keeps the angle/progress gauge current.
    """

    def __init__(self, store, queue, size=WINDOW_SIZE, clock=utcnow, path=LIVE_EVENT_PATH):
        self.store = store
        self.queue = queue
        self.size = size
        self.clock = clock
        self.path = path
        self.state = StateFlow(LiveView())
        self._last_remote = None
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
            print(f"WARNING: Live event listen failed: {error}")
            return
        if snapshot is None or not snapshot.exists:
            return

        event = read_live_event(snapshot.data)
        entry = None
        if event.event_type:
            key = (event.event_type, event.timestamp)
            # Redelivery of the snapshot already logged.
            if key != self._last_remote:
                self._last_remote = key
                entry = LoggedEvent(event, classify_event(event.event_type))

        def fold(view):
            events = append_event(view.events, entry, self.size) if entry else view.events
            return replace(view, angle=event.angle, progress=event.progress, events=events)

        self.state.update(fold)

    def record_local(self, event_type):
        """Log a locally originated event without waiting for a remote echo."""
        event = LiveEvent(event_type=event_type, timestamp=self.clock(), local=True)
        entry = LoggedEvent(event, classify_event(event_type))
        self.queue.submit(
            self.state.update,
            lambda view: replace(view, events=append_event(view.events, entry, self.size)),
        )
        return event
