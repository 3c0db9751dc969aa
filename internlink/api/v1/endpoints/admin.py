"""Admin endpoints: user management and task progress administration."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.constants.constants import AssignmentMode, LeaderboardScope, ProgressStatus
from internlink.core.database import aget_db
from internlink.core.security import get_current_user
from internlink.models.attendance import Attendance
from internlink.models.cohort import Cohort
from internlink.models.college import College
from internlink.models.task import Subtask, Task, TaskComment
from internlink.models.taskprogress import SubtaskProgress, TaskProgress, TimeLog
from internlink.models.user import User
from internlink.schemas.adminSchema import TaskProgressAdminRequest
from internlink.schemas.userSchema import UserCreateRequest, UserUpdateRequest
from internlink.services.LeaderboardService import LeaderboardService, serialize_entry
from internlink.services.TaskProgressService import TaskProgressService
from internlink.utils.check_roles import check_admin_role
from internlink.utils.scoring import rank_leaderboard
from internlink.utils.serializers import serialize_user
from internlink.utils.validators import validate_id

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"]
)

TOP_PERFORMERS_LIMIT = 10


def require_admin(user: User):
    if not check_admin_role(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )


async def _validate_affiliation(db: AsyncSession, college_id: Optional[str], cohort_id: Optional[str]):
    if college_id:
        result = await db.execute(select(College).where(College.college_id == validate_id(college_id, "college id")))
        if not result.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="College not found"
            )
    if cohort_id:
        result = await db.execute(select(Cohort).where(Cohort.cohort_id == validate_id(cohort_id, "cohort id")))
        if not result.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cohort not found"
            )


async def _get_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.user_id == validate_id(user_id, "user id")))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    require_admin(current_user)
    await _validate_affiliation(db, user_data.college_id, user_data.cohort_id)

    try:
        user = User(
            username=user_data.username.strip(),
            name=user_data.name.strip(),
            email=user_data.email,
            gitlab_id=user_data.gitlab_id,
            role=user_data.role,
            college_id=user_data.college_id,
            cohort_id=user_data.cohort_id,
            is_active=True,
        )
        db.add(user)
        await db.commit()
        logger.info(f"👤 User {user.username} created by {current_user.username}")
        return {"message": "User created successfully", "user": serialize_user(user)}

    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or GitLab id already exists"
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error creating user: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user"
        )


@router.patch("/users/{user_id}")
async def update_user(
    user_id: str,
    user_data: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Update a user's role, affiliation or profile fields."""
    require_admin(current_user)
    user = await _get_user(db, user_id)
    await _validate_affiliation(db, user_data.college_id, user_data.cohort_id)

    try:
        for field in user_data.model_fields_set:
            value = getattr(user_data, field)
            if value is None and field in ("name", "role", "is_active"):
                continue
            setattr(user, field, value)
        await db.commit()
        return {"message": "User updated successfully", "user": serialize_user(user)}

    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error updating user {user_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update user"
        )


@router.delete("/users/{user_id}")
async def deactivate_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Soft delete: the account is deactivated and keeps its history."""
    require_admin(current_user)
    user = await _get_user(db, user_id)
    if user.user_id == current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate your own account"
        )

    try:
        user.is_active = False
        await db.commit()
        logger.info(f"🚫 User {user.username} deactivated by {current_user.username}")
        return {"message": "User deactivated successfully", "userId": user.user_id}

    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error deactivating user {user_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to deactivate user"
        )


async def _delete_progress(db: AsyncSession, progress_ids):
    await db.execute(delete(SubtaskProgress).where(SubtaskProgress.progress_id.in_(progress_ids)))
    await db.execute(delete(TimeLog).where(TimeLog.progress_id.in_(progress_ids)))
    await db.execute(delete(TaskProgress).where(TaskProgress.progress_id.in_(progress_ids)))


@router.delete("/users/{user_id}/purge")
async def purge_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Hard delete a user.
    Removes the user's progress records, attendance and individually assigned
    tasks; references held by other records are cleared.
    """
    require_admin(current_user)
    user = await _get_user(db, user_id)
    if user.user_id == current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot purge your own account"
        )

    try:
        uid = user.user_id
        owned_task_ids = select(Task.task_id).where(
            and_(Task.assignment_mode == AssignmentMode.individual, Task.assignee_id == uid)
        )
        progress_ids = select(TaskProgress.progress_id).where(
            or_(TaskProgress.intern_id == uid, TaskProgress.task_id.in_(owned_task_ids))
        )

        counts = {}
        purged_progress = (await db.execute(progress_ids)).scalars().all()
        counts["progressRecords"] = len(purged_progress)
        if purged_progress:
            await _delete_progress(db, purged_progress)

        task_ids = (await db.execute(owned_task_ids)).scalars().all()
        counts["tasks"] = len(task_ids)
        if task_ids:
            await db.execute(delete(Subtask).where(Subtask.task_id.in_(task_ids)))
            await db.execute(delete(TaskComment).where(TaskComment.task_id.in_(task_ids)))
            await db.execute(delete(Task).where(Task.task_id.in_(task_ids)))

        counts["attendance"] = (
            await db.execute(delete(Attendance).where(Attendance.user_id == uid))
        ).rowcount

        await db.execute(update(Task).where(Task.created_by == uid).values(created_by=None))
        await db.execute(update(Task).where(Task.deleted_by == uid).values(deleted_by=None))
        await db.execute(update(TaskComment).where(TaskComment.author_id == uid).values(author_id=None))
        await db.execute(update(TaskProgress).where(TaskProgress.completed_by == uid).values(completed_by=None))
        await db.execute(update(TaskProgress).where(TaskProgress.reviewed_by == uid).values(reviewed_by=None))
        await db.execute(update(Cohort).where(Cohort.tech_lead_id == uid).values(tech_lead_id=None))
        await db.execute(update(College).where(College.poc_id == uid).values(poc_id=None))

        await db.execute(delete(User).where(User.user_id == uid))
        await db.commit()

        logger.warning(f"🔥 User {uid} purged by {current_user.username}: {counts}")
        return {"message": "User permanently deleted", "userId": uid, "deleted": counts}

    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error purging user {user_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to purge user"
        )


@router.get("/task-progress")
async def get_task_progress_admin(
    action: str = Query(...),
    cohort_id: Optional[str] = Query(None, alias="cohortId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Task progress reports.
    - action=stats: record counts by status and the top performers
    - action=cohort-progress&cohortId=: per-intern and per-task progress of a cohort
    """
    require_admin(current_user)
    service = TaskProgressService(db)

    if action == "stats":
        result = await db.execute(
            select(TaskProgress.status, func.count())
            .join(Task, Task.task_id == TaskProgress.task_id)
            .where(Task.is_active == True)
            .group_by(TaskProgress.status)
        )
        by_status = {s.value: 0 for s in ProgressStatus}
        for progress_status, count in result.all():
            by_status[progress_status.value] = count

        leaderboard = LeaderboardService(db)
        interns = await leaderboard.interns_in_scope(LeaderboardScope.global_, None)
        ranked = rank_leaderboard(await leaderboard.build_entries(interns))
        return {
            "totalRecords": sum(by_status.values()),
            "byStatus": by_status,
            "topPerformers": [serialize_entry(e) for e in ranked[:TOP_PERFORMERS_LIMIT]],
        }

    if action == "cohort-progress":
        if not cohort_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="cohortId is required"
            )
        return await service.cohort_progress(validate_id(cohort_id, "cohort id"))

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Invalid action"
    )


@router.post("/task-progress")
async def post_task_progress_admin(
    action: Optional[str] = Query(None),
    payload: Optional[TaskProgressAdminRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Progress initialization; `action` comes from the query string or the body.
    - initialize-progress: one task for explicit interns, a cohort, or the task's cohort
    - bulk-initialize: every active task of a cohort for every active cohort intern
    """
    require_admin(current_user)
    payload = payload or TaskProgressAdminRequest()
    action = action or payload.action
    service = TaskProgressService(db)

    try:
        if action == "initialize-progress":
            if not payload.task_id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Missing required field(s): taskId"
                )
            task = await service.get_task(validate_id(payload.task_id, "task id"))

            if payload.intern_ids:
                intern_ids = [validate_id(i, "intern id") for i in payload.intern_ids]
            else:
                cohort_id = payload.cohort_id or task.cohort_id
                if not cohort_id:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail="Provide internIds or cohortId, or use a cohort task"
                    )
                interns = await service.cohort_interns(validate_id(cohort_id, "cohort id"))
                intern_ids = [intern.user_id for intern in interns]

            counts = await service.initialize_progress(task, intern_ids)
            await db.commit()
            return {"message": "Progress initialized", "taskId": task.task_id, **counts}

        if action == "bulk-initialize":
            if not payload.cohort_id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Missing required field(s): cohortId"
                )
            counts = await service.bulk_initialize(validate_id(payload.cohort_id, "cohort id"))
            await db.commit()
            logger.info(f"📦 Bulk initialization for cohort {payload.cohort_id}: {counts}")
            return {"message": "Bulk initialization complete", "cohortId": payload.cohort_id, **counts}

        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid action"
        )

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error running task progress action {action}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to run task progress action"
        )
