# backend/services/history.py

from dataclasses import dataclass

from services.firebase import HISTORY_COLLECTION
from services.state import StateFlow
from services.store import document_path
from utils.time import day_label, isoformat, parse_timestamp

UNKNOWN_DATE = "Unknown date"


@dataclass(frozen=True)
class HistoryEvent:
    event_type: str
    timestamp: object = None


@dataclass(frozen=True)
class HistorySession:
    id: str
    start_time: object = None
    end_time: object = None
    events: tuple = ()

    def to_dict(self):
        return {
            "id": self.id,
            "start_time": isoformat(self.start_time),
            "end_time": isoformat(self.end_time),
            "events": [
                {"eventType": e.event_type, "timestamp": isoformat(e.timestamp)}
                for e in self.events
            ],
        }


@dataclass(frozen=True)
class SessionGroup:
    date: str
    sessions: tuple = ()

    def to_dict(self):
        return {"date": self.date, "sessions": [s.to_dict() for s in self.sessions]}


def read_session(snapshot):
    raw_events = snapshot.get("events")
    events = []
    for raw in raw_events if isinstance(raw_events, list) else []:
        if not isinstance(raw, dict):
            continue
        event_type = raw.get("eventType")
        events.append(HistoryEvent(
            event_type=event_type if isinstance(event_type, str) else "",
            timestamp=parse_timestamp(raw.get("timestamp")),
        ))

    return HistorySession(
        id=snapshot.id,
        start_time=parse_timestamp(snapshot.get("startTime")),
        end_time=parse_timestamp(snapshot.get("endTime")),
        events=tuple(events),
    )


def group_sessions_by_day(sessions, tz=None):
    """
    Group sessions by the calendar day of their start time.

    Groups appear in the order of their first session and keep the input
    order of their sessions. Sessions without a start time go to the
    "Unknown date" group.
    """
    groups = {}
    for session in sessions:
        label = day_label(session.start_time, tz) or UNKNOWN_DATE
        groups.setdefault(label, []).append(session)
    return [SessionGroup(date, tuple(items)) for date, items in groups.items()]


def sort_newest_first(sessions):
    """Newest start time first; sessions without one go last, in input order."""
    sessions = list(sessions)
    dated = [s for s in sessions if s.start_time is not None]
    undated = [s for s in sessions if s.start_time is None]
    dated.sort(key=lambda s: s.start_time, reverse=True)
    return dated + undated


class HistoryAggregator:
    """
    Live, day-grouped view of completed sessions, newest first.
    """

    def __init__(self, store, queue, tz=None, collection=HISTORY_COLLECTION):
        self.store = store
        self.queue = queue
        self.tz = tz
        self.collection = collection
        self.groups = StateFlow([])
        self._subscription = None

    def start(self):
        if self._subscription is None:
            # Unordered: a server-side order_by would leave out sessions
            # without a startTime.
            self._subscription = self.store.subscribe_collection(self.collection, self._on_snapshot)
        return self._subscription

    def close(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def _on_snapshot(self, snapshots, error):
        self.queue.submit(self.apply, snapshots, error)

    def apply(self, snapshots, error=None):
        if error is not None:
            print(f"WARNING: History listen failed: {error}")
            return

        sessions = sort_newest_first(read_session(s) for s in snapshots or [] if s.exists)
        self.groups.set(group_sessions_by_day(sessions, self.tz))

    def delete_session(self, session_id):
        path = document_path(self.collection, session_id)
        try:
            self.store.delete(path)
            print(f"[History] Session {session_id} deleted")
            return True
        except Exception as e:
            print(f"ERROR deleting session {session_id}: {e}")
            return False
