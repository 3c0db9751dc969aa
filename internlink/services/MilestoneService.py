"""Counters behind achievements and streaks."""

from datetime import date
from typing import List

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.constants.constants import UserRole
from internlink.models.attendance import Attendance
from internlink.models.base import utcnow
from internlink.models.user import User
from internlink.services.GitLabClient import gitlab_client
from internlink.services.TaskProgressService import TaskProgressService
from internlink.utils.achievements import AchievementCounters
from internlink.utils.scoring import summarize_intern


async def attended_days(db: AsyncSession, user_id: str) -> List[date]:
    """Calendar days on which the user checked in."""
    result = await db.execute(
        select(Attendance.date)
        .where(and_(Attendance.user_id == user_id, Attendance.check_in.isnot(None)))
        .order_by(Attendance.date)
    )
    return list(result.scalars().all())


async def achievement_counters(db: AsyncSession, user: User) -> AchievementCounters:
    completed_tasks = completion_rate = 0
    if user.role == UserRole.intern:
        stats = summarize_intern(await TaskProgressService(db).intern_snapshots(user))
        completed_tasks = stats.completed_tasks
        completion_rate = stats.completion_rate

    contributions = await gitlab_client.get_contribution_counts(user.gitlab_id)
    days = await attended_days(db, user.user_id)
    account_age = (utcnow() - user.created_at).days if user.created_at else 0

    return AchievementCounters(
        completed_tasks=completed_tasks,
        commit_count=contributions["commits"],
        attendance_days=len(days),
        account_age_days=max(account_age, 0),
        completion_rate=completion_rate,
    )
