"""Dashboard router: role-aware headline numbers."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.api.v1.endpoints.tasks import staff_task_filter
from internlink.constants.constants import LeaderboardScope, ProgressStatus, TaskStatus, UserRole
from internlink.core.database import aget_db
from internlink.core.security import get_current_user
from internlink.models.cohort import Cohort
from internlink.models.task import Task
from internlink.models.taskprogress import TaskProgress
from internlink.models.user import User
from internlink.services.LeaderboardService import LeaderboardService
from internlink.services.MilestoneService import achievement_counters
from internlink.services.TaskProgressService import TaskProgressService
from internlink.utils.achievements import derive_achievements
from internlink.utils.check_roles import check_staff_role
from internlink.utils.scoring import summarize_intern

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


async def intern_dashboard(db: AsyncSession, user: User) -> dict:
    stats = summarize_intern(await TaskProgressService(db).intern_snapshots(user))
    board = await LeaderboardService(db).leaderboard(user, LeaderboardScope.cohort)
    achievements = derive_achievements(await achievement_counters(db, user))
    return {
        "role": user.role.value,
        "totalTasks": stats.total_tasks,
        "completedTasks": stats.completed_tasks,
        "completionRate": stats.completion_rate,
        "pointsEarned": stats.points_earned,
        "hoursLogged": stats.hours_logged,
        "cohortRank": board["currentUserRank"],
        "cohortSize": board["totalParticipants"],
        "achievementsUnlocked": sum(1 for a in achievements if a["achieved"]),
    }


async def staff_dashboard(db: AsyncSession, user: User) -> dict:
    users_query = select(User.role, func.count()).where(User.is_active == True)
    if user.role == UserRole.poc:
        users_query = users_query.where(User.college_id == user.college_id)
    elif user.role == UserRole.tech_lead:
        led_cohorts = select(Cohort.cohort_id).where(Cohort.tech_lead_id == user.user_id)
        users_query = users_query.where(User.cohort_id.in_(led_cohorts))
    user_counts = {role.value: 0 for role in UserRole}
    for role, count in (await db.execute(users_query.group_by(User.role))).all():
        user_counts[role.value] = count

    task_query = select(Task.status, func.count()).where(Task.is_active == True)
    scope = staff_task_filter(user)
    if scope is not None:
        task_query = task_query.where(scope)
    task_counts = {s.value: 0 for s in TaskStatus}
    for task_status, count in (await db.execute(task_query.group_by(Task.status))).all():
        task_counts[task_status.value] = count

    progress_query = (
        select(TaskProgress.status, func.count())
        .join(Task, Task.task_id == TaskProgress.task_id)
        .where(Task.is_active == True)
    )
    help_query = (
        select(func.count())
        .select_from(TaskProgress)
        .join(Task, Task.task_id == TaskProgress.task_id)
        .where(and_(Task.is_active == True, TaskProgress.needs_help == True))
    )
    if scope is not None:
        progress_query = progress_query.where(scope)
        help_query = help_query.where(scope)
    progress_counts = {s.value: 0 for s in ProgressStatus}
    for progress_status, count in (await db.execute(progress_query.group_by(TaskProgress.status))).all():
        progress_counts[progress_status.value] = count

    return {
        "role": user.role.value,
        "users": user_counts,
        "totalInterns": user_counts[UserRole.intern.value],
        "tasks": task_counts,
        "totalTasks": sum(task_counts.values()),
        "progress": progress_counts,
        "needsHelp": (await db.execute(help_query)).scalar_one(),
    }


@router.get("/stats")
async def get_dashboard_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    if current_user.role == UserRole.intern:
        return await intern_dashboard(db, current_user)
    if check_staff_role(current_user):
        return await staff_dashboard(db, current_user)
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Your account has not been assigned a role yet"
    )
