"""
Task progress service: lazy record creation, bulk initialization and the
per-task and per-intern progress views built on the shared scoring rules.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.constants.constants import AssignmentMode, TaskStatus, UserRole
from internlink.models.cohort import Cohort
from internlink.models.task import Task
from internlink.models.taskprogress import TaskProgress
from internlink.models.user import User
from internlink.utils.scoring import (
    ProgressSnapshot,
    overview_sort_key,
    resolve_points,
    summarize_intern,
    summarize_overview,
)
from internlink.utils.serializers import serialize_snapshot, serialize_task_brief, serialize_user_brief

logger = logging.getLogger(__name__)

# Tasks an intern is scored against.
SCORED_TASK_EXCLUDED = (TaskStatus.draft, TaskStatus.cancelled)


def new_progress(task_id: str, intern_id: str) -> TaskProgress:
    return TaskProgress(
        task_id=task_id,
        intern_id=intern_id,
        subtask_progress=[],
        time_logs=[],
    )


def intern_task_filter(intern: User):
    """Tasks assigned to the intern directly or through their cohort."""
    clauses = [
        and_(
            Task.assignment_mode == AssignmentMode.individual,
            Task.assignee_id == intern.user_id,
        )
    ]
    if intern.cohort_id:
        clauses.append(
            and_(
                Task.assignment_mode == AssignmentMode.cohort,
                Task.cohort_id == intern.cohort_id,
            )
        )
    return or_(*clauses)


def task_applies_to(task: Task, intern: User) -> bool:
    if task.assignment_mode == AssignmentMode.individual:
        return task.assignee_id == intern.user_id
    return bool(intern.cohort_id) and task.cohort_id == intern.cohort_id


def build_snapshots(
    intern: User,
    tasks: Iterable[Task],
    records: Dict[Tuple[str, str], TaskProgress],
) -> List[ProgressSnapshot]:
    """One snapshot per task for the intern, synthesizing missing records."""
    snapshots = []
    for task in tasks:
        points = resolve_points(task.points)
        record = records.get((task.task_id, intern.user_id))
        if record is not None:
            snapshots.append(ProgressSnapshot.from_record(record, points))
        else:
            snapshots.append(
                ProgressSnapshot(task_id=task.task_id, intern_id=intern.user_id, task_points=points)
            )
    return snapshots


class TaskProgressService:
    """Progress operations over one request's database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_task(self, task_id: str) -> Task:
        result = await self.db.execute(
            select(Task).where(and_(Task.task_id == task_id, Task.is_active == True))
        )
        task = result.scalar_one_or_none()
        if not task:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Task not found"
            )
        return task

    async def get_progress(self, task_id: str, intern_id: str) -> Optional[TaskProgress]:
        result = await self.db.execute(
            select(TaskProgress).where(
                and_(TaskProgress.task_id == task_id, TaskProgress.intern_id == intern_id)
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create_progress(self, task: Task, intern_id: str) -> TaskProgress:
        """Fetch the (task, intern) record, creating the default one on first access."""
        record = await self.get_progress(task.task_id, intern_id)
        if record:
            return record

        task_id = task.task_id
        record = new_progress(task_id, intern_id)
        try:
            async with self.db.begin_nested():
                self.db.add(record)
        except IntegrityError:
            # Created by a concurrent request between the read and the insert.
            record = await self.get_progress(task_id, intern_id)
            if not record:
                raise
        return record

    async def eligible_interns(self, task: Task) -> List[User]:
        """The individual assignee, or every active intern of the task's cohort."""
        if task.assignment_mode == AssignmentMode.individual:
            query = select(User).where(User.user_id == task.assignee_id)
        else:
            query = (
                select(User)
                .where(
                    and_(
                        User.cohort_id == task.cohort_id,
                        User.role == UserRole.intern,
                        User.is_active == True,
                    )
                )
                .order_by(User.name)
            )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def cohort_interns(self, cohort_id: str) -> List[User]:
        result = await self.db.execute(
            select(User)
            .where(
                and_(
                    User.cohort_id == cohort_id,
                    User.role == UserRole.intern,
                    User.is_active == True,
                )
            )
            .order_by(User.name)
        )
        return list(result.scalars().all())

    async def get_cohort(self, cohort_id: str) -> Cohort:
        result = await self.db.execute(select(Cohort).where(Cohort.cohort_id == cohort_id))
        cohort = result.scalar_one_or_none()
        if not cohort:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cohort not found"
            )
        return cohort

    async def records_for_tasks(self, task_ids: Sequence[str], intern_ids: Sequence[str] = None):
        if not task_ids:
            return {}
        query = select(TaskProgress).where(TaskProgress.task_id.in_(task_ids))
        if intern_ids is not None:
            query = query.where(TaskProgress.intern_id.in_(intern_ids))
        result = await self.db.execute(query)
        return {(r.task_id, r.intern_id): r for r in result.scalars().all()}

    async def initialize_progress(self, task: Task, intern_ids: Sequence[str]) -> dict:
        """
        Create a default record for every target intern lacking one.

        Interns are processed one at a time; ids that are not active interns
        are counted as skipped. Running it again only moves counts from
        created to existing.
        """
        target_ids = list(dict.fromkeys(intern_ids))
        result = await self.db.execute(
            select(User.user_id).where(
                and_(
                    User.user_id.in_(target_ids),
                    User.role == UserRole.intern,
                    User.is_active == True,
                )
            )
        )
        valid_ids = set(result.scalars().all())

        result = await self.db.execute(
            select(TaskProgress.intern_id).where(
                and_(
                    TaskProgress.task_id == task.task_id,
                    TaskProgress.intern_id.in_(target_ids),
                )
            )
        )
        existing_ids = set(result.scalars().all())

        created = existing = skipped = 0
        for intern_id in target_ids:
            if intern_id not in valid_ids:
                skipped += 1
                continue
            if intern_id in existing_ids:
                existing += 1
                continue
            self.db.add(new_progress(task.task_id, intern_id))
            existing_ids.add(intern_id)
            created += 1

        await self.db.flush()
        logger.info(
            f"📋 Progress initialized for task {task.task_id}: "
            f"{created} created, {existing} existing, {skipped} skipped"
        )
        return {
            "created": created,
            "existing": existing,
            "skipped": skipped,
            "totalInterns": len(target_ids),
        }

    async def cohort_tasks(self, cohort_id: str) -> List[Task]:
        result = await self.db.execute(
            select(Task)
            .where(
                and_(
                    Task.assignment_mode == AssignmentMode.cohort,
                    Task.cohort_id == cohort_id,
                    Task.is_active == True,
                    Task.status.notin_(SCORED_TASK_EXCLUDED),
                )
            )
            .order_by(Task.created_at)
        )
        return list(result.scalars().all())

    async def bulk_initialize(self, cohort_id: str) -> dict:
        """Initialize every active cohort task for every active cohort intern."""
        await self.get_cohort(cohort_id)
        tasks = await self.cohort_tasks(cohort_id)
        interns = await self.cohort_interns(cohort_id)
        intern_ids = [intern.user_id for intern in interns]

        created = existing = 0
        for task in tasks:
            counts = await self.initialize_progress(task, intern_ids)
            created += counts["created"]
            existing += counts["existing"]

        return {
            "created": created,
            "existing": existing,
            "totalTasks": len(tasks),
            "totalInterns": len(interns),
            "expectedRecords": len(tasks) * len(interns),
        }

    async def progress_overview(self, task: Task) -> dict:
        """Every eligible intern's snapshot of one task with a summary block."""
        interns = await self.eligible_interns(task)
        records = await self.records_for_tasks([task.task_id], [i.user_id for i in interns])

        rows = []
        for intern in interns:
            snapshot = build_snapshots(intern, [task], records)[0]
            rows.append((intern, snapshot))

        snapshots = [snapshot for _, snapshot in rows]
        rows.sort(key=lambda row: overview_sort_key(row[1]))
        return {
            "task": serialize_task_brief(task),
            "summary": summarize_overview(snapshots),
            "progressOverview": [
                {"intern": serialize_user_brief(intern), "progress": serialize_snapshot(snapshot)}
                for intern, snapshot in rows
            ],
        }

    async def tasks_for_intern(
        self,
        intern: User,
        since: Optional[datetime] = None,
        scored_only: bool = True,
    ) -> List[Task]:
        query = select(Task).where(and_(Task.is_active == True, intern_task_filter(intern)))
        if scored_only:
            query = query.where(Task.status.notin_(SCORED_TASK_EXCLUDED))
        else:
            query = query.where(Task.status != TaskStatus.draft)
        if since is not None:
            query = query.where(Task.created_at >= since)
        result = await self.db.execute(query.order_by(Task.due_date))
        return list(result.scalars().all())

    async def intern_snapshots(self, intern: User, since: Optional[datetime] = None) -> List[ProgressSnapshot]:
        tasks = await self.tasks_for_intern(intern, since=since)
        records = await self.records_for_tasks([t.task_id for t in tasks], [intern.user_id])
        return build_snapshots(intern, tasks, records)

    async def intern_progress(self, intern: User) -> dict:
        """The intern's snapshots and aggregate stats."""
        tasks = await self.tasks_for_intern(intern)
        records = await self.records_for_tasks([t.task_id for t in tasks], [intern.user_id])
        snapshots = build_snapshots(intern, tasks, records)
        stats = summarize_intern(snapshots)
        return {
            "stats": {
                "totalTasks": stats.total_tasks,
                "completedTasks": stats.completed_tasks,
                "completionRate": stats.completion_rate,
                "pointsEarned": stats.points_earned,
                "hoursLogged": stats.hours_logged,
            },
            "progress": [
                {"task": serialize_task_brief(task), "progress": serialize_snapshot(snapshot)}
                for task, snapshot in zip(tasks, snapshots)
            ],
        }

    async def cohort_progress(self, cohort_id: str) -> dict:
        """Per-intern stats and per-task summaries across one cohort."""
        cohort = await self.get_cohort(cohort_id)
        tasks = await self.cohort_tasks(cohort_id)
        interns = await self.cohort_interns(cohort_id)
        records = await self.records_for_tasks(
            [t.task_id for t in tasks], [i.user_id for i in interns]
        )

        intern_rows = []
        for intern in interns:
            stats = summarize_intern(build_snapshots(intern, tasks, records))
            intern_rows.append({
                "intern": serialize_user_brief(intern),
                "totalTasks": stats.total_tasks,
                "completedTasks": stats.completed_tasks,
                "completionRate": stats.completion_rate,
                "pointsEarned": stats.points_earned,
                "hoursLogged": stats.hours_logged,
            })
        intern_rows.sort(key=lambda row: (-row["pointsEarned"], -row["completedTasks"]))

        task_rows = []
        for task in tasks:
            snapshots = [build_snapshots(intern, [task], records)[0] for intern in interns]
            task_rows.append({
                "task": serialize_task_brief(task),
                "summary": summarize_overview(snapshots),
            })

        return {
            "cohort": {"id": cohort.cohort_id, "name": cohort.name},
            "totalTasks": len(tasks),
            "totalInterns": len(interns),
            "interns": intern_rows,
            "tasks": task_rows,
        }
