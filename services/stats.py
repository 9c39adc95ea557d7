# backend/services/stats.py

from datetime import timedelta

from services.firebase import HISTORY_COLLECTION
from utils.time import parse_timestamp, utcnow


def get_weekly_event_counts(store, now=None, tz=None):
    """
    Count session events per day over the last 7 days (today included).

    Returns [{"label": "Mon", "value": 3}, ...] oldest first, with every
    day present even when it has no events.
    """
    now = (parse_timestamp(now) or utcnow()).astimezone(tz)
    days = [(now - timedelta(days=i)).date() for i in range(6, -1, -1)]
    counts = {day: 0 for day in days}
    since = now - timedelta(days=7)

    try:
        sessions = store.get(HISTORY_COLLECTION)
    except Exception as e:
        print(f"Warning: Error reading history for stats: {e}")
        sessions = []

    for session in sessions:
        events = session.get("events")
        if not isinstance(events, list):
            continue
        for event in events:
            if not isinstance(event, dict):
                continue
            ts = parse_timestamp(event.get("timestamp"))
            if ts is None or ts <= since:
                continue
            day = ts.astimezone(tz).date()
            if day in counts:
                counts[day] += 1

    return [{"label": day.strftime("%a"), "value": counts[day]} for day in days]
