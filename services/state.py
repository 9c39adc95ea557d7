# backend/services/state.py

import threading
from concurrent.futures import ThreadPoolExecutor


class UpdateQueue:
    """
    Single-threaded owner for UI-bound state.

    Store callbacks arrive on the store's delivery thread; they hand their
    work to this queue so each state object has exactly one writer.
    Work runs in submission order.
    """

    def __init__(self, name="state-owner"):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._closed = False

    def submit(self, fn, *args, **kwargs):
        if self._closed:
            return None
        try:
            return self._executor.submit(_run_logged, fn, *args, **kwargs)
        except RuntimeError:
            # Shut down between the check and the submit.
            return None

    def flush(self, timeout=5.0):
        """Block until everything submitted so far has run."""
        future = self.submit(lambda: None)
        if future is not None:
            future.result(timeout=timeout)

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)


def _run_logged(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except Exception as e:
        print(f"ERROR in state update {getattr(fn, '__qualname__', fn)}: {e}")
        raise


class StateFlow:
    """
    Observable single-slot value. Every change replaces the whole value,
    so readers never see a half-applied update.
    """

    def __init__(self, initial):
        self._value = initial
        self._lock = threading.Lock()
        self._listeners = []

    @property
    def value(self):
        with self._lock:
            return self._value

    def set(self, value):
        with self._lock:
            self._value = value
            listeners = list(self._listeners)
        for listener in listeners:
            listener(value)

    def update(self, fn):
        with self._lock:
            value = fn(self._value)
            self._value = value
            listeners = list(self._listeners)
        for listener in listeners:
            listener(value)
        return value

    def subscribe(self, listener):
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
