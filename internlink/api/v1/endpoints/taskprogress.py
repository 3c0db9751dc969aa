"""Per-intern task progress router: start, progress, subtasks, submission, review."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.constants.constants import TaskStatus, UserRole
from internlink.core.database import aget_db
from internlink.core.security import get_current_user
from internlink.models.base import utcnow
from internlink.models.task import Task
from internlink.models.user import User
from internlink.schemas.progressSchema import (
    HelpRequest,
    ProgressUpdateRequest,
    ReviewRequest,
    SubmitRequest,
    SubtaskStateRequest,
    TimeLogRequest,
)
from internlink.services.TaskProgressService import TaskProgressService, task_applies_to
from internlink.utils.check_roles import check_staff_role
from internlink.utils.progress import (
    ProgressRuleError,
    apply_progress_update,
    apply_review,
    mark_completed,
    mark_started,
    mark_submitted,
    record_time_log,
    request_help,
    resolve_help,
    set_subtask_state,
    sync_individual_task,
)
from internlink.utils.scoring import resolve_points
from internlink.utils.serializers import serialize_progress
from internlink.utils.validators import validate_id

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tasks",
    tags=["task-progress"]
)


async def get_assigned_task(service: TaskProgressService, task_id: str, user: User) -> Task:
    """Load a task the intern works on; cancelled tasks accept no progress."""
    task = await service.get_task(validate_id(task_id, "task id"))
    if user.role != UserRole.intern or not task_applies_to(task, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the assigned intern can update progress on this task"
        )
    if task.status == TaskStatus.draft:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    if task.status == TaskStatus.cancelled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Task has been cancelled"
        )
    return task


async def _fail(db: AsyncSession, action: str, task_id: str, e: Exception):
    await db.rollback()
    if isinstance(e, ProgressRuleError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    logger.error(f"❌ Error while trying to {action} for task {task_id}: {str(e)}")
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}"
    )


@router.get("/{task_id}/progress")
async def get_my_progress(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """The caller's progress record for the task, created on first access."""
    service = TaskProgressService(db)
    task = await service.get_task(validate_id(task_id, "task id"))
    if current_user.role != UserRole.intern or not task_applies_to(task, current_user) \
            or task.status == TaskStatus.draft:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )

    try:
        record = await service.get_or_create_progress(task, current_user.user_id)
        await db.commit()
        return {"progress": serialize_progress(record)}
    except HTTPException:
        raise
    except Exception as e:
        await _fail(db, "load progress", task_id, e)


@router.patch("/{task_id}/progress")
async def update_progress(
    task_id: str,
    payload: ProgressUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Set percent complete (0-100):
    - 0 -> not_started
    - between 0 and 100 -> in_progress
    - 100 -> completed, awarding the task's points
    """
    service = TaskProgressService(db)
    task = await get_assigned_task(service, task_id, current_user)

    try:
        now = utcnow()
        record = await service.get_or_create_progress(task, current_user.user_id)
        apply_progress_update(record, payload.progress, resolve_points(task.points), now)
        sync_individual_task(task, record, now)
        await db.commit()
        return {
            "message": "Progress updated successfully",
            "progress": serialize_progress(record)
        }
    except HTTPException:
        raise
    except Exception as e:
        await _fail(db, "update progress", task_id, e)


@router.post("/{task_id}/start")
async def start_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    service = TaskProgressService(db)
    task = await get_assigned_task(service, task_id, current_user)

    try:
        now = utcnow()
        record = await service.get_or_create_progress(task, current_user.user_id)
        started = mark_started(record, now)
        sync_individual_task(task, record, now)
        await db.commit()
        return {
            "message": "Task started" if started else "Task already started",
            "progress": serialize_progress(record)
        }
    except HTTPException:
        raise
    except Exception as e:
        await _fail(db, "start task", task_id, e)


@router.post("/{task_id}/complete")
async def complete_task(
    task_id: str,
    intern_id: Optional[str] = Query(None, alias="internId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Mark the task completed for an intern, awarding the task's points.
    Interns complete their own progress; staff pass internId.
    """
    service = TaskProgressService(db)

    if check_staff_role(current_user):
        if not intern_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="internId is required"
            )
        task = await service.get_task(validate_id(task_id, "task id"))
        if task.status == TaskStatus.cancelled:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Task has been cancelled"
            )
        intern_id = validate_id(intern_id, "intern id")
        interns = await service.eligible_interns(task)
        if intern_id not in {intern.user_id for intern in interns}:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Intern is not assigned to this task"
            )
    else:
        task = await get_assigned_task(service, task_id, current_user)
        intern_id = current_user.user_id

    try:
        now = utcnow()
        record = await service.get_or_create_progress(task, intern_id)
        mark_completed(record, resolve_points(task.points), now, completed_by=current_user.user_id)
        sync_individual_task(task, record, now)
        await db.commit()
        logger.info(f"🎉 Task {task.task_id} completed for intern {intern_id}")
        return {
            "message": "Task marked as completed",
            "pointsEarned": record.points_earned,
            "progress": serialize_progress(record)
        }
    except HTTPException:
        raise
    except Exception as e:
        await _fail(db, "complete task", task_id, e)


@router.post("/{task_id}/submit")
async def submit_task(
    task_id: str,
    payload: SubmitRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    service = TaskProgressService(db)
    task = await get_assigned_task(service, task_id, current_user)

    try:
        now = utcnow()
        record = await service.get_or_create_progress(task, current_user.user_id)
        mark_submitted(record, payload.submission_url, payload.notes, now)
        sync_individual_task(task, record, now)
        await db.commit()
        return {
            "message": "Task submitted for review",
            "progress": serialize_progress(record)
        }
    except HTTPException:
        raise
    except Exception as e:
        await _fail(db, "submit task", task_id, e)


@router.patch("/{task_id}/subtasks/{subtask_id}")
async def update_subtask(
    task_id: str,
    subtask_id: str,
    payload: SubtaskStateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Check or un-check a subtask; percent complete follows the checked share."""
    service = TaskProgressService(db)
    task = await get_assigned_task(service, task_id, current_user)
    subtask_id = validate_id(subtask_id, "subtask id")
    subtask_ids = {subtask.subtask_id for subtask in task.subtasks}
    if subtask_id not in subtask_ids:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subtask not found"
        )

    try:
        now = utcnow()
        record = await service.get_or_create_progress(task, current_user.user_id)
        set_subtask_state(
            record, subtask_ids, subtask_id, payload.completed, resolve_points(task.points), now
        )
        sync_individual_task(task, record, now)
        await db.commit()
        return {
            "message": "Subtask updated",
            "progress": serialize_progress(record)
        }
    except HTTPException:
        raise
    except Exception as e:
        await _fail(db, "update subtask", task_id, e)


@router.post("/{task_id}/time-log", status_code=status.HTTP_201_CREATED)
async def log_time(
    task_id: str,
    payload: TimeLogRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    service = TaskProgressService(db)
    task = await get_assigned_task(service, task_id, current_user)

    try:
        record = await service.get_or_create_progress(task, current_user.user_id)
        record_time_log(record, payload.hours, payload.description, utcnow())
        await db.commit()
        return {
            "message": "Time logged",
            "actualHours": record.actual_hours,
            "progress": serialize_progress(record)
        }
    except HTTPException:
        raise
    except Exception as e:
        await _fail(db, "log time", task_id, e)


@router.post("/{task_id}/help-request")
async def create_help_request(
    task_id: str,
    payload: HelpRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    service = TaskProgressService(db)
    task = await get_assigned_task(service, task_id, current_user)

    try:
        record = await service.get_or_create_progress(task, current_user.user_id)
        request_help(record, payload.message, utcnow())
        await db.commit()
        logger.info(f"🙋 Help requested on task {task.task_id} by {current_user.username}")
        return {
            "message": "Help request sent",
            "progress": serialize_progress(record)
        }
    except HTTPException:
        raise
    except Exception as e:
        await _fail(db, "request help", task_id, e)


@router.delete("/{task_id}/help-request")
async def resolve_help_request(
    task_id: str,
    intern_id: Optional[str] = Query(None, alias="internId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Resolve a help request; interns resolve their own, staff pass internId."""
    service = TaskProgressService(db)
    if check_staff_role(current_user) and intern_id:
        task = await service.get_task(validate_id(task_id, "task id"))
        intern_id = validate_id(intern_id, "intern id")
    else:
        task = await get_assigned_task(service, task_id, current_user)
        intern_id = current_user.user_id

    record = await service.get_progress(task.task_id, intern_id)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Progress record not found"
        )

    try:
        resolve_help(record)
        await db.commit()
        return {
            "message": "Help request resolved",
            "progress": serialize_progress(record)
        }
    except Exception as e:
        await _fail(db, "resolve help request", task_id, e)


@router.post("/{task_id}/progress/{intern_id}/review")
async def review_progress(
    task_id: str,
    intern_id: str,
    payload: ReviewRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Approve a submission (full points) or send it back to in_progress."""
    if not check_staff_role(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff can review submissions"
        )
    service = TaskProgressService(db)
    task = await service.get_task(validate_id(task_id, "task id"))
    intern_id = validate_id(intern_id, "intern id")
    record = await service.get_progress(task.task_id, intern_id)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Progress record not found"
        )

    try:
        now = utcnow()
        apply_review(
            record,
            approve=payload.approve,
            points=resolve_points(task.points),
            now=now,
            reviewer_id=current_user.user_id,
            grade=payload.grade,
            feedback=payload.feedback,
        )
        sync_individual_task(task, record, now)
        await db.commit()
        return {
            "message": "Submission approved" if payload.approve else "Changes requested",
            "progress": serialize_progress(record)
        }
    except HTTPException:
        raise
    except Exception as e:
        await _fail(db, "review submission", task_id, e)


@router.get("/{task_id}/progress-overview")
async def get_progress_overview(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Every eligible intern's progress on the task, missing records shown as not started."""
    if not check_staff_role(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff can view the progress overview"
        )
    service = TaskProgressService(db)
    task = await service.get_task(validate_id(task_id, "task id"))
    return await service.progress_overview(task)
