"""Task management router for the InternLink system."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.constants.constants import (
    TASK_CATEGORIES,
    AssignmentMode,
    COMPLETION_STATUSES,
    ProgressStatus,
    TaskStatus,
    UserRole,
)
from internlink.core.database import aget_db
from internlink.core.security import get_current_user
from internlink.models.base import utcnow
from internlink.models.cohort import Cohort
from internlink.models.task import Subtask, Task, TaskComment
from internlink.models.taskprogress import SubtaskProgress, TaskProgress
from internlink.models.user import User
from internlink.schemas.taskSchema import (
    CohortAssignment,
    CommentCreateRequest,
    IndividualAssignment,
    TaskCreateRequest,
    TaskStatusUpdateRequest,
    TaskUpdateRequest,
)
from internlink.services.TaskProgressService import TaskProgressService, build_snapshots, task_applies_to
from internlink.utils.check_roles import check_admin_role, check_staff_role
from internlink.utils.scoring import resolve_points
from internlink.utils.serializers import serialize_task
from internlink.utils.timeutils import as_naive_utc
from internlink.utils.validators import validate_id

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"]
)


def staff_task_filter(user: User):
    """Tasks within a staff member's reach; None means unrestricted."""
    if user.role == UserRole.admin:
        return None

    if user.role == UserRole.tech_lead:
        cohort_ids = select(Cohort.cohort_id).where(Cohort.tech_lead_id == user.user_id)
        member_ids = select(User.user_id).where(User.cohort_id.in_(cohort_ids))
    elif user.college_id:
        cohort_ids = select(Cohort.cohort_id).where(Cohort.college_id == user.college_id)
        member_ids = select(User.user_id).where(
            or_(User.cohort_id.in_(cohort_ids), User.college_id == user.college_id)
        )
    else:
        return Task.created_by == user.user_id

    return or_(
        Task.created_by == user.user_id,
        Task.cohort_id.in_(cohort_ids),
        Task.assignee_id.in_(member_ids),
    )


async def resolve_assignment(db: AsyncSession, assignment):
    """Validate the assignment target and return the (mode, assignee_id, cohort_id) triple."""
    if isinstance(assignment, IndividualAssignment):
        assignee_id = validate_id(assignment.assignee_id, "assignee id")
        result = await db.execute(select(User).where(User.user_id == assignee_id))
        assignee = result.scalar_one_or_none()
        if not assignee or not assignee.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Assignee not found"
            )
        if assignee.role != UserRole.intern:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Tasks can only be assigned to interns"
            )
        return AssignmentMode.individual, assignee_id, None

    if isinstance(assignment, CohortAssignment):
        cohort_id = validate_id(assignment.cohort_id, "cohort id")
        result = await db.execute(select(Cohort).where(Cohort.cohort_id == cohort_id))
        cohort = result.scalar_one_or_none()
        if not cohort or not cohort.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cohort not found"
            )
        return AssignmentMode.cohort, None, cohort_id

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Invalid assignment"
    )


async def get_visible_task(db: AsyncSession, task_id: str, user: User) -> Task:
    """Load an active task the user may see; interns only see their non-draft tasks."""
    task = await TaskProgressService(db).get_task(validate_id(task_id, "task id"))
    if check_staff_role(user):
        return task
    if task.status == TaskStatus.draft or not task_applies_to(task, user):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


def can_manage_task(task: Task, user: User) -> bool:
    return check_admin_role(user) or (check_staff_role(user) and task.created_by == user.user_id)


@router.get("/categories")
async def get_categories(current_user: User = Depends(get_current_user)):
    return {"categories": TASK_CATEGORIES}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Create a task for one intern or a whole cohort.
    Only admins, tech leads and points-of-contact can create tasks.
    """
    if not check_staff_role(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins, tech leads and points-of-contact can create tasks"
        )

    try:
        mode, assignee_id, cohort_id = await resolve_assignment(db, task_data.assignment)

        task = Task(
            title=task_data.title.strip(),
            description=task_data.description,
            category=task_data.category,
            priority=task_data.priority,
            status=task_data.status,
            assignment_mode=mode,
            assignee_id=assignee_id,
            cohort_id=cohort_id,
            points=task_data.points,
            due_date=as_naive_utc(task_data.due_date),
            estimated_hours=task_data.estimated_hours,
            created_by=current_user.user_id,
            is_active=True,
            subtasks=[
                Subtask(title=subtask.title, description=subtask.description, position=position)
                for position, subtask in enumerate(task_data.subtasks)
            ],
            comments=[],
        )
        db.add(task)
        await db.commit()

        logger.info(f"✅ Task {task.task_id} created by {current_user.username} ({mode.value})")
        return {
            "message": "Task created successfully",
            "task": serialize_task(task)
        }

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error creating task: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create task"
        )


@router.get("")
async def list_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    category: Optional[str] = None,
    cohort_id: Optional[str] = Query(None, alias="cohortId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    List tasks.
    - Interns: non-draft tasks assigned to them or their cohort, with their progress
    - Staff: tasks within their scope
    """
    query = select(Task).where(Task.is_active == True)

    if current_user.role == UserRole.intern:
        service = TaskProgressService(db)
        tasks = await service.tasks_for_intern(current_user, scored_only=False)
        if status_filter:
            tasks = [t for t in tasks if t.status == status_filter]
        if category:
            tasks = [t for t in tasks if t.category == category]
        records = await service.records_for_tasks([t.task_id for t in tasks], [current_user.user_id])
        snapshots = build_snapshots(current_user, tasks, records)
        return {
            "tasks": [serialize_task(t, snapshot) for t, snapshot in zip(tasks, snapshots)],
            "total": len(tasks),
        }

    if not check_staff_role(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has not been assigned a role yet"
        )

    scope = staff_task_filter(current_user)
    if scope is not None:
        query = query.where(scope)
    if status_filter:
        query = query.where(Task.status == status_filter)
    if category:
        query = query.where(Task.category == category)
    if cohort_id:
        query = query.where(Task.cohort_id == validate_id(cohort_id, "cohort id"))

    result = await db.execute(query.order_by(Task.due_date))
    tasks = result.scalars().all()
    return {
        "tasks": [serialize_task(t) for t in tasks],
        "total": len(tasks),
    }


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    task = await get_visible_task(db, task_id, current_user)
    if current_user.role == UserRole.intern:
        service = TaskProgressService(db)
        records = await service.records_for_tasks([task.task_id], [current_user.user_id])
        snapshot = build_snapshots(current_user, [task], records)[0]
        return {"task": serialize_task(task, snapshot)}
    return {"task": serialize_task(task)}


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    task_data: TaskUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Update a task. Only the creator or an admin can update.
    Switching the assignment mode clears the reference of the other mode.
    """
    task = await get_visible_task(db, task_id, current_user)
    if not can_manage_task(task, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the task creator or an admin can update this task"
        )
    if task.status == TaskStatus.cancelled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cancelled tasks cannot be modified"
        )

    try:
        if task_data.title is not None:
            task.title = task_data.title.strip()
        if task_data.description is not None:
            task.description = task_data.description
        if task_data.category is not None:
            task.category = task_data.category
        if task_data.priority is not None:
            task.priority = task_data.priority
        if task_data.due_date is not None:
            task.due_date = as_naive_utc(task_data.due_date)
        if task_data.estimated_hours is not None:
            task.estimated_hours = task_data.estimated_hours
        if "points" in task_data.model_fields_set:
            task.points = task_data.points
            await db.execute(
                update(TaskProgress)
                .where(
                    and_(
                        TaskProgress.task_id == task.task_id,
                        TaskProgress.status.in_(COMPLETION_STATUSES),
                    )
                )
                .values(points_earned=resolve_points(task.points))
            )
        if task_data.assignment is not None:
            mode, assignee_id, cohort_id = await resolve_assignment(db, task_data.assignment)
            task.assignment_mode = mode
            task.assignee_id = assignee_id
            task.cohort_id = cohort_id
        if task_data.subtasks is not None:
            old_ids = [subtask.subtask_id for subtask in task.subtasks]
            if old_ids:
                await db.execute(
                    delete(SubtaskProgress).where(SubtaskProgress.subtask_id.in_(old_ids))
                )
            task.subtasks = [
                Subtask(title=subtask.title, description=subtask.description, position=position)
                for position, subtask in enumerate(task_data.subtasks)
            ]

        await db.commit()
        return {
            "message": "Task updated successfully",
            "task": serialize_task(task)
        }

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error updating task {task_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update task"
        )


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Soft delete a task, recording who deleted it and when."""
    task = await get_visible_task(db, task_id, current_user)
    if not can_manage_task(task, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the task creator or an admin can delete this task"
        )

    try:
        task.is_active = False
        task.deleted_at = utcnow()
        task.deleted_by = current_user.user_id
        await db.commit()
        logger.info(f"🗑️ Task {task.task_id} deleted by {current_user.username}")
        return {"message": "Task deleted successfully", "taskId": task.task_id}

    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error deleting task {task_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete task"
        )


@router.patch("/{task_id}/status")
async def update_task_status(
    task_id: str,
    status_data: TaskStatusUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Update the lifecycle status of a task (staff only).
    Cancelling is reserved to admins and is terminal.
    """
    if not check_staff_role(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff can change task status"
        )
    task = await get_visible_task(db, task_id, current_user)

    if task.status == TaskStatus.cancelled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cancelled tasks cannot change status"
        )
    new_status = status_data.status
    if new_status == TaskStatus.cancelled and not check_admin_role(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can cancel tasks"
        )

    try:
        now = utcnow()
        old_status = task.status
        task.status = new_status

        if new_status == TaskStatus.in_progress and not task.started_at:
            task.started_at = now
        elif new_status == TaskStatus.completed:
            task.completed_at = now
        elif new_status == TaskStatus.cancelled:
            task.cancelled_at = now
            # Open progress ends with the task; completed work keeps its points.
            await db.execute(
                update(TaskProgress)
                .where(
                    and_(
                        TaskProgress.task_id == task.task_id,
                        TaskProgress.status.notin_(COMPLETION_STATUSES),
                    )
                )
                .values(status=ProgressStatus.cancelled, points_earned=0)
            )

        if new_status != TaskStatus.completed:
            task.completed_at = None

        await db.commit()
        logger.info(f"🔄 Task {task.task_id} status {old_status.value} -> {new_status.value}")
        return {
            "message": "Task status updated successfully",
            "task": serialize_task(task)
        }

    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error updating status of task {task_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update task status"
        )


@router.post("/{task_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    task_id: str,
    comment_data: CommentCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    task = await get_visible_task(db, task_id, current_user)
    content = comment_data.content.strip()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Comment text is required"
        )

    try:
        comment = TaskComment(author_id=current_user.user_id, content=content, created_at=utcnow())
        task.comments.append(comment)
        await db.commit()
        return {
            "message": "Comment added",
            "comment": {
                "id": comment.comment_id,
                "authorId": comment.author_id,
                "authorName": current_user.name,
                "content": comment.content,
                "createdAt": comment.created_at.isoformat(),
            },
            "totalComments": len(task.comments),
        }

    except Exception as e:
        await db.rollback()
        logger.error(f"❌ Error adding comment to task {task_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add comment"
        )
