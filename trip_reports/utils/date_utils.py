"""Date manipulation utilities"""

from datetime import date, datetime, time, timezone


def hours_between(day: date, start: time, end: time) -> float:
    """Elapsed hours between two clock times on the same day (negative if end < start)"""
    delta = datetime.combine(day, end) - datetime.combine(day, start)
    return delta.total_seconds() / 3600


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)
