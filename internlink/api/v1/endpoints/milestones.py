from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.core.database import aget_db
from internlink.core.security import get_current_user
from internlink.models.base import utcnow
from internlink.models.user import User
from internlink.services.MilestoneService import achievement_counters, attended_days
from internlink.utils.achievements import derive_achievements, total_achievement_points
from internlink.utils.attendance import (
    current_streak,
    default_policy,
    local_day,
    longest_streak,
    streak_history,
)

router = APIRouter(prefix="/milestones", tags=["milestones"])

STREAK_HISTORY_DAYS = 30


@router.get("/achievements")
async def get_achievements(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Achievements derived from the caller's task, attendance and GitLab counters."""
    counters = await achievement_counters(db, current_user)
    achievements = derive_achievements(counters)
    return {
        "achievements": achievements,
        "totalPoints": total_achievement_points(achievements),
        "achievedCount": sum(1 for a in achievements if a["achieved"]),
        "totalCount": len(achievements),
        "counters": {
            "completedTasks": counters.completed_tasks,
            "commits": counters.commit_count,
            "attendanceDays": counters.attendance_days,
            "accountAgeDays": counters.account_age_days,
            "completionRate": counters.completion_rate,
        },
    }


@router.get("/streak")
async def get_streak(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    days = await attended_days(db, current_user.user_id)
    today = local_day(utcnow(), default_policy())
    return {
        "currentStreak": current_streak(days, today),
        "longestStreak": longest_streak(days),
        "totalDays": len(set(days)),
        "history": streak_history(days, today, STREAK_HISTORY_DAYS),
    }
