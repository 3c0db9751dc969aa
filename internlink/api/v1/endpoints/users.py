"""Users router: directory listing for staff and the caller's own progress."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.constants.constants import UserRole
from internlink.core.database import aget_db
from internlink.core.security import get_current_user
from internlink.models.cohort import Cohort
from internlink.models.user import User
from internlink.services.TaskProgressService import TaskProgressService
from internlink.utils.check_roles import check_admin_role, check_staff_role
from internlink.utils.serializers import serialize_user
from internlink.utils.validators import validate_id

router = APIRouter(
    prefix="/users",
    tags=["users"]
)


@router.get("")
async def list_users(
    role: Optional[UserRole] = None,
    cohort_id: Optional[str] = Query(None, alias="cohortId"),
    include_inactive: bool = Query(False, alias="includeInactive"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    List users (staff only).
    Admins see everyone; points-of-contact their college; tech leads the
    cohorts they lead.
    """
    if not check_staff_role(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff can list users"
        )

    query = select(User)
    if not include_inactive or not check_admin_role(current_user):
        query = query.where(User.is_active == True)

    if current_user.role == UserRole.poc:
        query = query.where(User.college_id == current_user.college_id)
    elif current_user.role == UserRole.tech_lead:
        led_cohorts = select(Cohort.cohort_id).where(Cohort.tech_lead_id == current_user.user_id)
        query = query.where(User.cohort_id.in_(led_cohorts))

    if role:
        query = query.where(User.role == role)
    if cohort_id:
        query = query.where(User.cohort_id == validate_id(cohort_id, "cohort id"))

    result = await db.execute(query.order_by(User.name))
    users = result.scalars().all()
    return {"users": [serialize_user(u) for u in users], "total": len(users)}


@router.get("/me/progress")
async def get_my_progress(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """The caller's progress snapshots on every task assigned to them, with totals."""
    if current_user.role != UserRole.intern:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only interns have task progress"
        )
    return await TaskProgressService(db).intern_progress(current_user)
