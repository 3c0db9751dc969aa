"""Leaderboard assembly: population by scope, stats per intern, ranking by metric."""

import logging
from datetime import timedelta
from typing import Optional, Tuple

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.constants.constants import (
    AssignmentMode,
    LeaderboardMetric,
    LeaderboardPeriod,
    LeaderboardScope,
    UserRole,
)
from internlink.models.attendance import Attendance
from internlink.models.base import utcnow
from internlink.models.task import Task
from internlink.models.user import User
from internlink.services.TaskProgressService import (
    SCORED_TASK_EXCLUDED,
    TaskProgressService,
    build_snapshots,
    task_applies_to,
)
from internlink.utils.attendance import current_streak, default_policy, local_day
from internlink.utils.scoring import LeaderboardEntry, rank_leaderboard, summarize_intern
from internlink.utils.timeutils import get_month_start, get_week_range

logger = logging.getLogger(__name__)

STREAK_WINDOW_DAYS = 90


def resolve_scope(user: User, scope: LeaderboardScope) -> Tuple[LeaderboardScope, Optional[str]]:
    """Fall back to the global population when the user lacks the scoped affiliation."""
    if scope == LeaderboardScope.college and user.college_id:
        return LeaderboardScope.college, user.college_id
    if scope == LeaderboardScope.cohort and user.cohort_id:
        return LeaderboardScope.cohort, user.cohort_id
    return LeaderboardScope.global_, None


def period_start(period: LeaderboardPeriod):
    if period == LeaderboardPeriod.this_week:
        return get_week_range()[0]
    if period == LeaderboardPeriod.this_month:
        return get_month_start()
    return None


class LeaderboardService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.progress_service = TaskProgressService(db)

    async def interns_in_scope(self, scope: LeaderboardScope, scope_id: Optional[str]):
        query = select(User).where(and_(User.role == UserRole.intern, User.is_active == True))
        if scope == LeaderboardScope.college:
            query = query.where(User.college_id == scope_id)
        elif scope == LeaderboardScope.cohort:
            query = query.where(User.cohort_id == scope_id)
        result = await self.db.execute(query.order_by(User.created_at, User.user_id))
        return list(result.scalars().all())

    async def _scored_tasks(self, interns, since):
        intern_ids = [i.user_id for i in interns]
        cohort_ids = list({i.cohort_id for i in interns if i.cohort_id})
        query = select(Task).where(
            and_(
                Task.is_active == True,
                Task.status.notin_(SCORED_TASK_EXCLUDED),
                or_(
                    and_(
                        Task.assignment_mode == AssignmentMode.individual,
                        Task.assignee_id.in_(intern_ids),
                    ),
                    and_(
                        Task.assignment_mode == AssignmentMode.cohort,
                        Task.cohort_id.in_(cohort_ids),
                    ),
                ),
            )
        )
        if since is not None:
            query = query.where(Task.created_at >= since)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _attended_days(self, intern_ids):
        since = utcnow() - timedelta(days=STREAK_WINDOW_DAYS + 1)
        result = await self.db.execute(
            select(Attendance.user_id, Attendance.date).where(
                and_(
                    Attendance.user_id.in_(intern_ids),
                    Attendance.check_in.isnot(None),
                    Attendance.date >= since.date(),
                )
            )
        )
        days = {}
        for user_id, day in result.all():
            days.setdefault(user_id, set()).add(day)
        return days

    async def build_entries(self, interns, since=None):
        tasks = await self._scored_tasks(interns, since) if interns else []
        intern_ids = [i.user_id for i in interns]
        records = await self.progress_service.records_for_tasks(
            [t.task_id for t in tasks], intern_ids
        )
        attended = await self._attended_days(intern_ids) if interns else {}
        today = local_day(utcnow(), default_policy())

        entries = []
        for intern in interns:
            intern_tasks = [t for t in tasks if task_applies_to(t, intern)]
            stats = summarize_intern(build_snapshots(intern, intern_tasks, records))
            entries.append(
                LeaderboardEntry(
                    intern_id=intern.user_id,
                    name=intern.name,
                    username=intern.username,
                    avatar=intern.avatar,
                    college_id=intern.college_id,
                    cohort_id=intern.cohort_id,
                    total_tasks=stats.total_tasks,
                    tasks_completed=stats.completed_tasks,
                    completion_rate=stats.completion_rate,
                    points_earned=stats.points_earned,
                    hours_logged=stats.hours_logged,
                    streak_days=current_streak(
                        attended.get(intern.user_id, ()), today, window=STREAK_WINDOW_DAYS
                    ),
                )
            )
        return entries

    async def leaderboard(
        self,
        user: User,
        scope: LeaderboardScope = LeaderboardScope.cohort,
        metric: LeaderboardMetric = LeaderboardMetric.points_earned,
        period: LeaderboardPeriod = LeaderboardPeriod.all_time,
    ) -> dict:
        effective_scope, scope_id = resolve_scope(user, scope)
        interns = await self.interns_in_scope(effective_scope, scope_id)
        entries = await self.build_entries(interns, since=period_start(period))
        ranked = rank_leaderboard(entries, metric)

        current_rank = None
        for entry in ranked:
            if entry.intern_id == user.user_id:
                entry.is_current_user = True
                current_rank = entry.rank

        logger.info(
            f"🏆 Leaderboard built: scope={effective_scope.value} metric={metric.value} "
            f"period={period.value} participants={len(ranked)}"
        )
        return {
            "leaderboard": [serialize_entry(entry) for entry in ranked],
            "scope": effective_scope.value,
            "requestedScope": scope.value,
            "metric": metric.value,
            "period": period.value,
            "currentUserRank": current_rank,
            "totalParticipants": len(ranked),
        }


def serialize_entry(entry: LeaderboardEntry) -> dict:
    return {
        "rank": entry.rank,
        "internId": entry.intern_id,
        "name": entry.name,
        "username": entry.username,
        "avatar": entry.avatar,
        "collegeId": entry.college_id,
        "cohortId": entry.cohort_id,
        "totalTasks": entry.total_tasks,
        "tasksCompleted": entry.tasks_completed,
        "completionRate": entry.completion_rate,
        "pointsEarned": entry.points_earned,
        "hoursLogged": entry.hours_logged,
        "streakDays": entry.streak_days,
        "isCurrentUser": entry.is_current_user,
    }
