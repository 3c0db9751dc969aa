"""Colleges and cohorts router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.constants.constants import UserRole
from internlink.core.database import aget_db
from internlink.core.security import get_current_user
from internlink.models.cohort import Cohort
from internlink.models.college import College
from internlink.models.user import User
from internlink.schemas.cohortSchema import CohortCreateRequest, CollegeCreateRequest
from internlink.services.TaskProgressService import TaskProgressService
from internlink.utils.check_roles import check_admin_role, check_staff_role
from internlink.utils.serializers import serialize_cohort, serialize_college, serialize_user_brief
from internlink.utils.timeutils import as_naive_utc
from internlink.utils.validators import validate_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cohorts"])


async def _ensure_user(db: AsyncSession, user_id: str, label: str, role: UserRole):
    result = await db.execute(select(User).where(User.user_id == validate_id(user_id, f"{label} id")))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{label.capitalize()} not found"
        )
    if user.role not in (role, UserRole.admin):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"User is not a {role.value}"
        )
    return user


@router.post("/colleges", status_code=status.HTTP_201_CREATED)
async def create_college(
    college_data: CollegeCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    if not check_admin_role(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    if college_data.poc_id:
        await _ensure_user(db, college_data.poc_id, "point-of-contact", UserRole.poc)

    try:
        college = College(
            name=college_data.name.strip(),
            description=college_data.description,
            location=college_data.location,
            poc_id=college_data.poc_id,
            is_active=True,
        )
        db.add(college)
        await db.commit()
        return {"message": "College created successfully", "college": serialize_college(college)}

    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A college with this name already exists"
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error creating college: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create college"
        )


@router.get("/colleges")
async def list_colleges(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    result = await db.execute(select(College).where(College.is_active == True).order_by(College.name))
    return {"colleges": [serialize_college(c) for c in result.scalars().all()]}


@router.post("/cohorts", status_code=status.HTTP_201_CREATED)
async def create_cohort(
    cohort_data: CohortCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    if not check_admin_role(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    if cohort_data.college_id:
        result = await db.execute(
            select(College).where(College.college_id == validate_id(cohort_data.college_id, "college id"))
        )
        if not result.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="College not found"
            )
    if cohort_data.tech_lead_id:
        await _ensure_user(db, cohort_data.tech_lead_id, "tech lead", UserRole.tech_lead)

    try:
        cohort = Cohort(
            name=cohort_data.name.strip(),
            description=cohort_data.description,
            start_date=as_naive_utc(cohort_data.start_date),
            end_date=as_naive_utc(cohort_data.end_date),
            college_id=cohort_data.college_id,
            tech_lead_id=cohort_data.tech_lead_id,
            max_interns=cohort_data.max_interns,
            is_active=True,
        )
        db.add(cohort)
        await db.commit()
        return {"message": "Cohort created successfully", "cohort": serialize_cohort(cohort)}

    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error creating cohort: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create cohort"
        )


@router.get("/cohorts")
async def list_cohorts(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Active cohorts; points-of-contact see their college, tech leads the cohorts they lead."""
    query = select(Cohort).where(Cohort.is_active == True)
    if current_user.role == UserRole.poc:
        query = query.where(Cohort.college_id == current_user.college_id)
    elif current_user.role == UserRole.tech_lead:
        query = query.where(Cohort.tech_lead_id == current_user.user_id)
    elif current_user.role in (UserRole.intern, UserRole.pending):
        query = query.where(Cohort.cohort_id == current_user.cohort_id)

    result = await db.execute(query.order_by(Cohort.start_date.desc()))
    return {"cohorts": [serialize_cohort(c) for c in result.scalars().all()]}


@router.get("/cohorts/{cohort_id}/interns")
async def list_cohort_interns(
    cohort_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    if not check_staff_role(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff can list cohort interns"
        )
    service = TaskProgressService(db)
    cohort = await service.get_cohort(validate_id(cohort_id, "cohort id"))
    interns = await service.cohort_interns(cohort.cohort_id)
    return {
        "cohort": serialize_cohort(cohort),
        "interns": [serialize_user_brief(i) for i in interns],
        "total": len(interns),
    }
