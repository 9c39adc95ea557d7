# backend/services/monitor.py

from dataclasses import dataclass

from services.control import CommandDispatcher
from services.heartbeat import OFFLINE_THRESHOLD, HeartbeatMonitor
from services.live_events import WINDOW_SIZE, LiveEventWindow
from services.session_timer import SessionTimer
from services.state import UpdateQueue
from services.status_sync import StatusSynchronizer
from utils.time import isoformat, utcnow


@dataclass(frozen=True)
class HomeState:
    is_active: bool = False
    is_armed: bool = False
    led_on: bool = False
    buzzer_on: bool = False
    is_bridge_online: bool = False
    current_limb: str = None
    session_id: str = None
    current_angle: float = 0.0
    current_progress: int = 0
    live_events: tuple = ()
    session_duration: str = "00:00"

    def to_dict(self):
        return {
            "is_active": self.is_active,
            "is_armed": self.is_armed,
            "led_on": self.led_on,
            "buzzer_on": self.buzzer_on,
            "is_bridge_online": self.is_bridge_online,
            "current_limb": self.current_limb,
            "session_id": self.session_id,
            "current_angle": self.current_angle,
            "current_progress": self.current_progress,
            "session_duration": self.session_duration,
            "live_events": [
                {
                    "eventType": logged.event.event_type,
                    "timestamp": isoformat(logged.event.timestamp),
                    "limb": logged.event.limb,
                    "local": logged.event.local,
                    "icon": logged.descriptor.icon,
                    "label": logged.descriptor.label,
                    "color": logged.descriptor.color,
                    "severity": logged.descriptor.severity,
                }
                for logged in self.live_events
            ],
        }


class HomeMonitor:
    """
    Owns the home-screen synchronizers, their update queue and the command
    dispatcher. Subscriptions are taken in `start()` and released in
    `close()`; use as a context manager to tie them to a scope.
    """

    def __init__(self, store, clock=utcnow, heartbeat_threshold=OFFLINE_THRESHOLD,
                 window_size=WINDOW_SIZE, timer_period=1.0):
        self.store = store
        self.queue = UpdateQueue()
        self.timer = SessionTimer(self.queue, clock=clock, period=timer_period)
        self.status = StatusSynchronizer(store, self.queue, self.timer)
        self.heartbeat = HeartbeatMonitor(store, self.queue, clock=clock, threshold=heartbeat_threshold)
        self.live_events = LiveEventWindow(store, self.queue, size=window_size, clock=clock)
        self.commands = CommandDispatcher(store, status=self.status, live_events=self.live_events, clock=clock)
        self._started = False

    def start(self):
        if self._started:
            return self
        self._started = True
        self.status.start()
        self.heartbeat.start()
        self.live_events.start()
        print("[Monitor] Subscribed to status, heartbeat and live events")
        return self

    def close(self):
        self.status.close()
        self.heartbeat.close()
        self.live_events.close()
        self.timer.stop()
        self.queue.close()
        if self._started:
            print("[Monitor] Subscriptions released")
        self._started = False

    def flush(self, timeout=5.0):
        self.queue.flush(timeout)

    def snapshot(self):
        status = self.status.state.value
        live = self.live_events.state.value
        return HomeState(
            is_active=status.is_active,
            is_armed=status.is_armed,
            led_on=status.led_on,
            buzzer_on=status.buzzer_on,
            is_bridge_online=self.heartbeat.online.value,
            current_limb=status.current_limb,
            session_id=status.session_id,
            current_angle=live.angle,
            current_progress=live.progress,
            live_events=live.events,
            session_duration=self.timer.display.value,
        )

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.close()
