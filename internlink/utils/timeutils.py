from datetime import datetime, timedelta, timezone
from typing import Optional

from internlink.models.base import utcnow


def as_naive_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Normalize an incoming datetime to the naive UTC form stored in the database."""
    if moment is None:
        return None
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def get_week_range(date: datetime = None):
    """Get the Monday-Sunday range for a given date."""
    if date is None:
        date = utcnow()

    start_of_week = date - timedelta(days=date.weekday())
    start_of_week = start_of_week.replace(hour=0, minute=0, second=0, microsecond=0)

    end_of_week = start_of_week + timedelta(days=6, hours=23, minutes=59, seconds=59)

    return start_of_week, end_of_week


def get_month_start(date: datetime = None) -> datetime:
    if date is None:
        date = utcnow()
    return date.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def isoformat_or_none(moment: Optional[datetime]) -> Optional[str]:
    return moment.isoformat() if moment else None
