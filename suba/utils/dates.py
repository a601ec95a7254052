"""
"Now" and "today" in the configured application timezone.
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo


def local_now(tz_name: str) -> datetime:
    """Naive wall-clock time in ``tz_name`` (payments are stored naive)."""
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)


def local_today(tz_name: str) -> date:
    return local_now(tz_name).date()
