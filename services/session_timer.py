# backend/services/session_timer.py

import threading

from services.state import StateFlow
from utils.time import parse_timestamp, utcnow

IDLE_DISPLAY = "00:00"


def format_elapsed(seconds):
    """
    MM:SS with unbounded minutes (e.g. 75:03). Negative values read as zero.
    """
    seconds = max(int(seconds), 0)
    minutes, seconds = divmod(seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


def elapsed_seconds(start_time, now):
    start = parse_timestamp(start_time)
    current = parse_timestamp(now)
    if start is None or current is None:
        return 0
    return int(current.timestamp()) - int(start.timestamp())


class SessionTimer:
    """
    Stopped / Running(start_time) state machine publishing the elapsed
    session time once per period.

    The ticking job is a daemon thread; only one is alive at a time.
    Each job carries a generation number and ticks from a cancelled job
    are discarded, so `stop()` always leaves the display at 00:00.
    """

    def __init__(self, queue, clock=utcnow, period=1.0):
        self.queue = queue
        self.clock = clock
        self.period = period
        self.display = StateFlow(IDLE_DISPLAY)

        self._lock = threading.Lock()
        self._job = None
        self._cancel = None
        self._generation = 0
        self._start_time = None

    @property
    def running(self):
        with self._lock:
            return self._job is not None and self._job.is_alive()

    @property
    def start_time(self):
        return self._start_time

    def start(self, start_time):
        with self._lock:
            if self._job is not None and self._job.is_alive():
                return False

            self._generation += 1
            self._start_time = start_time
            self._cancel = threading.Event()
            self._job = threading.Thread(
                target=self._run,
                args=(self._generation, start_time, self._cancel),
                name=f"session-timer-{self._generation}",
                daemon=True,
            )
            self._job.start()
        print(f"[Timer] Session timer started (start={start_time})")
        return True

    def stop(self):
        with self._lock:
            job = self._job
            was_running = job is not None
            if self._cancel is not None:
                self._cancel.set()
            self._job = None
            self._cancel = None
            self._start_time = None
            self._generation += 1
            generation = self._generation
        self.queue.submit(self._publish, generation, IDLE_DISPLAY)
        if job is not None and job is not threading.current_thread():
            job.join(timeout=max(self.period, 1.0))
        if was_running:
            print("[Timer] Session timer stopped")

    def _run(self, generation, start_time, cancel):
        while not cancel.is_set():
            text = format_elapsed(elapsed_seconds(start_time, self.clock()))
            self.queue.submit(self._publish, generation, text)
            cancel.wait(self.period)

    def _publish(self, generation, text):
        with self._lock:
            if generation != self._generation:
                return
        self.display.set(text)
