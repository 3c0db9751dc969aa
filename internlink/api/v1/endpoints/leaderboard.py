from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.constants.constants import LeaderboardMetric, LeaderboardPeriod, LeaderboardScope
from internlink.core.database import aget_db
from internlink.core.security import get_current_user
from internlink.models.user import User
from internlink.services.LeaderboardService import LeaderboardService

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("")
async def get_leaderboard(
    scope: LeaderboardScope = LeaderboardScope.cohort,
    metric: LeaderboardMetric = LeaderboardMetric.points_earned,
    period: LeaderboardPeriod = LeaderboardPeriod.all_time,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Rank interns in the caller's college, cohort or globally.
    Falls back to the global population when the caller has no such affiliation.
    """
    return await LeaderboardService(db).leaderboard(current_user, scope, metric, period)
