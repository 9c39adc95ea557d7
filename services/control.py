# backend/services/control.py

from services.firebase import COMMAND_PATH, SESSIONS_COLLECTION, STATUS_PATH
from services.live_events import (
    BUZZER_MANUAL_OFF,
    BUZZER_MANUAL_ON,
    LED_MANUAL_OFF,
    LED_MANUAL_ON,
)
from services.store import document_path
from utils.time import utcnow

CALIB_INIT = "CALIB_INIT"
CALIB_FINAL = "CALIB_FINAL"
VALID_COMMANDS = [CALIB_INIT, CALIB_FINAL]


class CommandDispatcher:
    """
    Outbound writes to the shared store.

    Writes are fire-and-forget: there is no acknowledgement from the bridge
    and a failed write is logged and dropped. A command the bridge misses
    while disconnected is lost.
    """

    def __init__(self, store, status=None, live_events=None, clock=utcnow):
        self.store = store
        self.status = status
        self.live_events = live_events
        self.clock = clock

    # ===============================
    # Arm / Disarm
    # ===============================
    def arm(self):
        return self._write("arming", self.store.set, STATUS_PATH, {
            "is_armed": True,
            "session_start_time": self.clock(),
        })

    def disarm(self):
        # session_start_time stays for the recorder until the next arm.
        return self._write("disarming", self.store.update, STATUS_PATH, {"is_armed": False})

    # ===============================
    # Sessions
    # ===============================
    def start_session(self, limb):
        """Mark a new session active and create its record. Returns the session id."""
        session_id = self.store.new_id(SESSIONS_COLLECTION)
        now = self.clock()

        self._write("starting session", self.store.set, STATUS_PATH, {
            "is_active": True,
            "current_limb": limb,
            "session_id": session_id,
            "session_start_time": now,
        })
        self._write("creating session record", self.store.set,
                    document_path(SESSIONS_COLLECTION, session_id), {
                        "limb": limb,
                        "startTime": now,
                    })
        print(f"[Session] Started session {session_id} (limb={limb})")
        return session_id

    def stop_session(self):
        return self._write("stopping session", self.store.update, STATUS_PATH, {"is_active": False})

    # ===============================
    # Calibration
    # ===============================
    def calibrate(self, kind):
        if kind not in VALID_COMMANDS:
            raise ValueError(f"Invalid calibration command: {kind!r}")
        return self._write("sending calibration command", self.store.set, COMMAND_PATH, {
            "command": kind,
            "timestamp": self.clock(),
        })

    # ===============================
    # Manual LED / Buzzer
    # ===============================
    def set_led(self, on):
        return self._toggle("led_on", on, LED_MANUAL_ON if on else LED_MANUAL_OFF)

    def set_buzzer(self, on):
        return self._toggle("buzzer_on", on, BUZZER_MANUAL_ON if on else BUZZER_MANUAL_OFF)

    def _toggle(self, field_name, on, event_type):
        on = bool(on)
        if self.status is not None:
            self.status.apply_local(**{field_name: on})
        ok = self._write(f"setting {field_name}", self.store.update, STATUS_PATH, {field_name: on})
        if self.live_events is not None:
            self.live_events.record_local(event_type)
        return ok

    def _write(self, action, op, path, fields):
        try:
            op(path, fields)
            return True
        except Exception as e:
            print(f"ERROR {action} ({path}): {e}")
            return False
