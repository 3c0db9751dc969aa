"""Attendance router: daily check-in/check-out and summaries."""

import logging
from datetime import date as date_type, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.constants.constants import AttendanceStatus, UserRole
from internlink.core.config import settings
from internlink.core.database import aget_db
from internlink.core.ratelimit import limiter
from internlink.core.security import get_current_user
from internlink.models.attendance import Attendance
from internlink.models.base import utcnow
from internlink.models.cohort import Cohort
from internlink.models.user import User
from internlink.utils.attendance import count_absent_weekdays, default_policy, local_day
from internlink.utils.check_roles import check_staff_role
from internlink.utils.serializers import serialize_attendance, serialize_user_brief

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attendance", tags=["attendance"])


async def _today_record(db: AsyncSession, user_id: str, today: date_type) -> Optional[Attendance]:
    result = await db.execute(
        select(Attendance).where(and_(Attendance.user_id == user_id, Attendance.date == today))
    )
    return result.scalar_one_or_none()


@router.post("/check-in", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.ATTENDANCE_RATE_LIMIT)
async def check_in(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    now = utcnow()
    today = local_day(now, default_policy())
    record = await _today_record(db, current_user.user_id, today)
    if record and record.check_in:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Already checked in today"
        )

    try:
        if record is None:
            record = Attendance(user_id=current_user.user_id, date=today)
            db.add(record)
        record.check_in = now
        await db.commit()
        logger.info(f"🕘 {current_user.username} checked in")
        return {"message": "Checked in successfully", "attendance": serialize_attendance(record)}

    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error checking in {current_user.username}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check in"
        )


@router.post("/check-out")
@limiter.limit(settings.ATTENDANCE_RATE_LIMIT)
async def check_out(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    now = utcnow()
    today = local_day(now, default_policy())
    record = await _today_record(db, current_user.user_id, today)
    if not record or not record.check_in:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You have not checked in today"
        )
    if record.check_out:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Already checked out today"
        )
    if now < record.check_in:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Check-out cannot be earlier than check-in"
        )

    try:
        record.check_out = now
        await db.commit()
        logger.info(f"🕔 {current_user.username} checked out after {record.working_hours}h")
        return {"message": "Checked out successfully", "attendance": serialize_attendance(record)}

    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error checking out {current_user.username}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check out"
        )


@router.get("/me")
async def get_my_attendance(
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """The caller's records over the last `days` days; absent counts weekdays with no record."""
    today = local_day(utcnow(), default_policy())
    start = today - timedelta(days=days - 1)
    result = await db.execute(
        select(Attendance)
        .where(and_(Attendance.user_id == current_user.user_id, Attendance.date >= start))
        .order_by(Attendance.date.desc())
    )
    records = result.scalars().all()

    def count(status_value):
        return sum(1 for r in records if r.status == status_value)

    return {
        "records": [serialize_attendance(r) for r in records],
        "summary": {
            "present": count(AttendanceStatus.present),
            "late": count(AttendanceStatus.late),
            "halfDay": count(AttendanceStatus.half_day),
            "absent": count(AttendanceStatus.absent)
            + count_absent_weekdays([r.date for r in records], start, today),
            "totalHours": round(sum(r.working_hours for r in records), 2),
            "days": days,
        },
    }


@router.get("/summary")
async def get_attendance_summary(
    date: Optional[date_type] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Attendance of every active intern in the caller's scope for one day (staff only)."""
    if not check_staff_role(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff can view the attendance summary"
        )
    day = date or local_day(utcnow(), default_policy())

    query = select(User).where(and_(User.role == UserRole.intern, User.is_active == True))
    if current_user.role == UserRole.poc:
        query = query.where(User.college_id == current_user.college_id)
    elif current_user.role == UserRole.tech_lead:
        led_cohorts = select(Cohort.cohort_id).where(Cohort.tech_lead_id == current_user.user_id)
        query = query.where(User.cohort_id.in_(led_cohorts))
    interns = (await db.execute(query.order_by(User.name))).scalars().all()

    result = await db.execute(
        select(Attendance).where(
            and_(Attendance.date == day, Attendance.user_id.in_([i.user_id for i in interns]))
        )
    )
    by_user = {r.user_id: r for r in result.scalars().all()}

    counts = {s.value: 0 for s in AttendanceStatus}
    rows = []
    for intern in interns:
        record = by_user.get(intern.user_id)
        counts[(record.status if record else AttendanceStatus.absent).value] += 1
        rows.append({
            "intern": serialize_user_brief(intern),
            "attendance": serialize_attendance(record) if record else None,
        })

    return {
        "date": day.isoformat(),
        "totalInterns": len(interns),
        "counts": counts,
        "records": rows,
    }
