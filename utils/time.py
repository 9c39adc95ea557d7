from datetime import datetime, timezone


def utcnow():
    """
    Always return timezone-aware UTC datetime
    """
    return datetime.now(timezone.utc)


def parse_timestamp(value):
    """
    Convert a store timestamp to a timezone-aware UTC datetime.

    Accepts Firestore timestamps (datetime subclasses), naive datetimes
    (assumed UTC) and epoch numbers in seconds or milliseconds.
    Anything else yields None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    try:
        ts = float(value)
        # Heuristic: large values are usually in milliseconds
        if ts > 1e11:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def day_label(value, tz=None):
    """
    Calendar day label (DD/MM/YYYY) of a timestamp, in local time unless
    `tz` is given. Returns None when the timestamp cannot be read.
    """
    dt = parse_timestamp(value)
    if dt is None:
        return None
    return dt.astimezone(tz).strftime("%d/%m/%Y")


def isoformat(value):
    dt = parse_timestamp(value)
    return dt.isoformat() if dt else None
