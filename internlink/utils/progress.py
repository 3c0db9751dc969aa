"""
State transitions of a per-intern TaskProgress record.

Every function mutates the record in place; callers persist it. Completion
always awards the task's full point value and leaving a completion state
always clears it, so points_earned > 0 only ever holds for completed work.
"""

from datetime import datetime
from typing import Optional

from internlink.constants.constants import AssignmentMode, COMPLETION_STATUSES, ProgressStatus, TaskStatus
from internlink.models.taskprogress import SubtaskProgress, TimeLog
from internlink.utils.scoring import round_percent

STARTED_MINIMUM_PROGRESS = 10
SUBMITTED_MINIMUM_PROGRESS = 90


class ProgressRuleError(ValueError):
    """Raised when a transition is not allowed for the record's state."""


def ensure_mutable(record):
    if record.status == ProgressStatus.cancelled:
        raise ProgressRuleError("Task progress has been cancelled")


def award_completion(record, points: int, now: datetime, completed_by: Optional[str] = None,
                     status: ProgressStatus = ProgressStatus.completed):
    record.status = status
    record.progress = 100
    record.points_earned = points
    if not record.completed_at:
        record.completed_at = now
    if completed_by:
        record.completed_by = completed_by
    if not record.started_at:
        record.started_at = now


def clear_completion(record):
    record.completed_at = None
    record.completed_by = None
    record.points_earned = 0


def _start(record, now: datetime):
    record.status = ProgressStatus.in_progress
    if not record.started_at:
        record.started_at = now


def apply_progress_update(record, percent: int, points: int, now: datetime):
    """
    Set percent complete and derive the status:
    0 -> not_started, (0, 100) -> in_progress, 100 -> completed
    (an approved record stays approved).
    """
    ensure_mutable(record)
    if percent is None or not 0 <= percent <= 100:
        raise ProgressRuleError("Progress must be a number between 0 and 100")

    if percent == 100:
        status = record.status if record.status in COMPLETION_STATUSES else ProgressStatus.completed
        award_completion(record, points, now, status=status)
        return record

    if record.status in COMPLETION_STATUSES:
        clear_completion(record)
    record.progress = percent
    if percent > 0:
        _start(record, now)
    else:
        record.status = ProgressStatus.not_started
    return record


def mark_started(record, now: datetime) -> bool:
    ensure_mutable(record)
    if record.status != ProgressStatus.not_started:
        return False
    _start(record, now)
    record.progress = max(record.progress or 0, STARTED_MINIMUM_PROGRESS)
    return True


def mark_completed(record, points: int, now: datetime, completed_by: Optional[str] = None):
    ensure_mutable(record)
    record.completed_at = now
    award_completion(record, points, now, completed_by=completed_by)
    return record


def mark_submitted(record, submission_url: str, notes: Optional[str], now: datetime):
    ensure_mutable(record)
    if not submission_url or not submission_url.strip():
        raise ProgressRuleError("Submission URL is required")

    record.submission_url = submission_url.strip()
    record.submission_notes = notes
    record.submitted_at = now
    if record.status not in COMPLETION_STATUSES:
        record.status = ProgressStatus.in_review
        record.progress = max(record.progress or 0, SUBMITTED_MINIMUM_PROGRESS)
        if not record.started_at:
            record.started_at = now
    return record


def apply_subtask_completion(record, completed_count: int, total_count: int, points: int, now: datetime):
    """
    Recompute progress from subtask check states. All checked completes the
    task; un-checking after completion reverts it to in_progress.
    """
    ensure_mutable(record)
    if total_count <= 0:
        raise ProgressRuleError("Task has no subtasks")

    if completed_count >= total_count:
        award_completion(record, points, now)
        return record

    record.progress = round_percent(completed_count, total_count)
    if record.status in COMPLETION_STATUSES:
        clear_completion(record)
        _start(record, now)
    elif completed_count > 0 and record.status == ProgressStatus.not_started:
        _start(record, now)
    return record


def apply_review(record, approve: bool, points: int, now: datetime, reviewer_id: str,
                 grade: Optional[int] = None, feedback: Optional[str] = None):
    ensure_mutable(record)
    record.reviewed_by = reviewer_id
    record.reviewed_at = now
    if grade is not None:
        record.grade = grade
    if feedback is not None:
        record.feedback = feedback

    if approve:
        award_completion(record, points, now, completed_by=reviewer_id, status=ProgressStatus.approved)
    else:
        if record.status in COMPLETION_STATUSES:
            clear_completion(record)
        # Only completion states sit at 100.
        record.progress = min(record.progress or 0, SUBMITTED_MINIMUM_PROGRESS)
        _start(record, now)
    return record


def request_help(record, message: str, now: datetime):
    if not message or not message.strip():
        raise ProgressRuleError("Help request message is required")
    record.needs_help = True
    record.help_message = message.strip()
    record.help_requested_at = now
    return record


def resolve_help(record):
    record.needs_help = False
    record.help_message = None
    record.help_requested_at = None
    return record


def total_hours(time_logs) -> float:
    return round(sum(log.hours for log in time_logs), 2)


def set_subtask_state(record, subtask_ids, subtask_id: str, completed: bool, points: int, now: datetime):
    """Check or un-check one subtask for the intern and recompute the record."""
    ensure_mutable(record)
    item = next((sp for sp in record.subtask_progress if sp.subtask_id == subtask_id), None)
    if item is None:
        item = SubtaskProgress(subtask_id=subtask_id, completed=False)
        record.subtask_progress.append(item)
    item.completed = completed
    item.completed_at = now if completed else None

    done = sum(1 for sp in record.subtask_progress if sp.completed and sp.subtask_id in subtask_ids)
    return apply_subtask_completion(record, done, len(subtask_ids), points, now)


def record_time_log(record, hours: float, description: Optional[str], now: datetime):
    ensure_mutable(record)
    if hours is None or hours <= 0:
        raise ProgressRuleError("Hours must be greater than 0")
    log = TimeLog(hours=hours, description=description, logged_at=now)
    record.time_logs.append(log)
    record.actual_hours = total_hours(record.time_logs)
    return log


TASK_STATUS_FOR_PROGRESS = {
    ProgressStatus.not_started: TaskStatus.active,
    ProgressStatus.in_progress: TaskStatus.in_progress,
    ProgressStatus.in_review: TaskStatus.in_review,
    ProgressStatus.completed: TaskStatus.completed,
    ProgressStatus.approved: TaskStatus.completed,
}


def sync_individual_task(task, record, now: datetime):
    """An individually assigned task mirrors its only progress record."""
    if task.assignment_mode != AssignmentMode.individual:
        return task
    task_status = TASK_STATUS_FOR_PROGRESS.get(record.status)
    if task_status is None:
        return task
    task.status = task_status
    if task_status != TaskStatus.active and not task.started_at:
        task.started_at = record.started_at or now
    if task_status == TaskStatus.completed:
        task.completed_at = record.completed_at or now
    else:
        task.completed_at = None
    return task
