"""Attendance derivation: working hours, day status and streaks."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

import pytz

from internlink.constants.constants import AttendanceStatus
from internlink.core.config import settings


@dataclass(frozen=True)
class AttendancePolicy:
    timezone: str = "UTC"
    work_start_hour: int = 9
    work_start_minute: int = 0
    grace_minutes: int = 15
    full_day_hours: float = 8.0
    half_day_hours: float = 4.0
    short_session_status: AttendanceStatus = AttendanceStatus.present

    @property
    def tz(self):
        return pytz.timezone(self.timezone)


def default_policy() -> AttendancePolicy:
    return AttendancePolicy(
        timezone=settings.ATTENDANCE_TIMEZONE,
        work_start_hour=settings.WORK_START_HOUR,
        work_start_minute=settings.WORK_START_MINUTE,
        grace_minutes=settings.LATE_GRACE_MINUTES,
        full_day_hours=settings.FULL_DAY_HOURS,
        half_day_hours=settings.HALF_DAY_HOURS,
        short_session_status=AttendanceStatus(settings.SHORT_SESSION_STATUS),
    )


def to_local(moment: datetime, policy: AttendancePolicy) -> datetime:
    """Convert a naive UTC timestamp to the policy's local timezone."""
    if moment.tzinfo is None:
        moment = pytz.utc.localize(moment)
    return moment.astimezone(policy.tz)


def local_day(moment: datetime, policy: AttendancePolicy) -> date:
    return to_local(moment, policy).date()


def is_late(check_in: datetime, policy: AttendancePolicy) -> bool:
    local_check_in = to_local(check_in, policy)
    threshold = policy.tz.localize(
        datetime.combine(
            local_check_in.date(),
            time(policy.work_start_hour, policy.work_start_minute),
        )
    ) + timedelta(minutes=policy.grace_minutes)
    return local_check_in > threshold


def working_hours(check_in: datetime, check_out: datetime) -> float:
    if check_out < check_in:
        raise ValueError("check-out cannot be earlier than check-in")
    return round((check_out - check_in).total_seconds() / 3600, 2)


def derive_attendance(
    check_in: Optional[datetime],
    check_out: Optional[datetime],
    policy: AttendancePolicy,
) -> tuple[AttendanceStatus, float]:
    """
    Derive (status, working_hours) from a check-in/check-out pair.

    - no check-in: absent
    - check-in only: present, still working
    - >= full day: present, or late when checked in after start + grace
    - >= half day: half_day
    - shorter: the policy's short-session status
    """
    if check_in is None:
        return AttendanceStatus.absent, 0.0
    if check_out is None:
        return AttendanceStatus.present, 0.0

    hours = working_hours(check_in, check_out)
    if hours >= policy.full_day_hours:
        status = AttendanceStatus.late if is_late(check_in, policy) else AttendanceStatus.present
    elif hours >= policy.half_day_hours:
        status = AttendanceStatus.half_day
    else:
        status = policy.short_session_status
    return status, hours


def current_streak(attended: Iterable[date], today: date, window: int = 90) -> int:
    """Consecutive attended days ending today; today itself may still be missing."""
    days = set(attended)
    streak = 0
    for offset in range(window):
        day = today - timedelta(days=offset)
        if day in days:
            streak += 1
        elif offset > 0:
            break
    return streak


def longest_streak(attended: Iterable[date]) -> int:
    longest = 0
    run = 0
    previous = None
    for day in sorted(set(attended)):
        if previous is not None and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day
    return longest


def streak_history(attended: Iterable[date], today: date, days: int = 30) -> list[dict]:
    attended_days = set(attended)
    history = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        history.append({"date": day.isoformat(), "attended": day in attended_days})
    return history


def count_absent_weekdays(attended: Iterable[date], start: date, end: date) -> int:
    """Weekdays in [start, end] with no attendance record."""
    attended_days = set(attended)
    absent = 0
    day = start
    while day <= end:
        if day.weekday() < 5 and day not in attended_days:
            absent += 1
        day += timedelta(days=1)
    return absent
