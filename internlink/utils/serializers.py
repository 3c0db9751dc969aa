"""Response shapes shared by the routers."""

from internlink.utils.scoring import ProgressSnapshot, resolve_points
from internlink.utils.timeutils import isoformat_or_none


def _value(enum_value):
    return enum_value.value if enum_value is not None and hasattr(enum_value, "value") else enum_value


def serialize_user(user) -> dict:
    return {
        "id": user.user_id,
        "username": user.username,
        "name": user.name,
        "email": user.email,
        "avatar": user.avatar,
        "role": _value(user.role),
        "gitlabId": user.gitlab_id,
        "collegeId": user.college_id,
        "cohortId": user.cohort_id,
        "isActive": user.is_active,
        "lastLogin": isoformat_or_none(user.last_login),
        "createdAt": isoformat_or_none(user.created_at),
    }


def serialize_user_brief(user) -> dict:
    return {
        "id": user.user_id,
        "username": user.username,
        "name": user.name,
        "email": user.email,
        "avatar": user.avatar,
        "cohortId": user.cohort_id,
    }


def serialize_assignment(task) -> dict:
    if _value(task.assignment_mode) == "cohort":
        return {"mode": "cohort", "cohortId": task.cohort_id}
    return {"mode": "individual", "assigneeId": task.assignee_id}


def serialize_task(task, snapshot: ProgressSnapshot = None) -> dict:
    data = {
        "id": task.task_id,
        "title": task.title,
        "description": task.description,
        "status": _value(task.status),
        "priority": _value(task.priority),
        "category": task.category,
        "assignment": serialize_assignment(task),
        "points": task.points,
        "effectivePoints": resolve_points(task.points),
        "dueDate": isoformat_or_none(task.due_date),
        "estimatedHours": task.estimated_hours,
        "createdBy": task.created_by,
        "startedAt": isoformat_or_none(task.started_at),
        "completedAt": isoformat_or_none(task.completed_at),
        "cancelledAt": isoformat_or_none(task.cancelled_at),
        "isActive": task.is_active,
        "createdAt": isoformat_or_none(task.created_at),
        "updatedAt": isoformat_or_none(task.updated_at),
        "subtasks": [
            {
                "id": subtask.subtask_id,
                "title": subtask.title,
                "description": subtask.description,
                "position": subtask.position,
            }
            for subtask in task.subtasks
        ],
        "comments": [
            {
                "id": comment.comment_id,
                "authorId": comment.author_id,
                "content": comment.content,
                "createdAt": isoformat_or_none(comment.created_at),
            }
            for comment in task.comments
        ],
    }
    if snapshot is not None:
        data["myProgress"] = serialize_snapshot(snapshot)
    return data


def serialize_task_brief(task) -> dict:
    return {
        "id": task.task_id,
        "title": task.title,
        "status": _value(task.status),
        "category": task.category,
        "assignment": serialize_assignment(task),
        "points": resolve_points(task.points),
        "dueDate": isoformat_or_none(task.due_date),
    }


def serialize_snapshot(snapshot: ProgressSnapshot) -> dict:
    return {
        "id": snapshot.progress_id,
        "taskId": snapshot.task_id,
        "internId": snapshot.intern_id,
        "status": _value(snapshot.status),
        "progress": snapshot.progress,
        "pointsEarned": snapshot.points_earned,
        "actualHours": snapshot.actual_hours,
        "needsHelp": snapshot.needs_help,
        "helpMessage": snapshot.help_message,
        "startedAt": isoformat_or_none(snapshot.started_at),
        "completedAt": isoformat_or_none(snapshot.completed_at),
        "submissionUrl": snapshot.submission_url,
        "submissionNotes": snapshot.submission_notes,
        "isCompleted": snapshot.completed,
        "updatedAt": isoformat_or_none(snapshot.updated_at),
    }


def serialize_progress(record) -> dict:
    return {
        "id": record.progress_id,
        "taskId": record.task_id,
        "internId": record.intern_id,
        "status": _value(record.status),
        "progress": record.progress,
        "pointsEarned": record.points_earned,
        "actualHours": record.actual_hours,
        "startedAt": isoformat_or_none(record.started_at),
        "completedAt": isoformat_or_none(record.completed_at),
        "completedBy": record.completed_by,
        "submissionUrl": record.submission_url,
        "submissionNotes": record.submission_notes,
        "submittedAt": isoformat_or_none(record.submitted_at),
        "reviewedBy": record.reviewed_by,
        "reviewedAt": isoformat_or_none(record.reviewed_at),
        "feedback": record.feedback,
        "grade": record.grade,
        "needsHelp": record.needs_help,
        "helpMessage": record.help_message,
        "helpRequestedAt": isoformat_or_none(record.help_requested_at),
        "subtasks": [
            {
                "subtaskId": item.subtask_id,
                "completed": item.completed,
                "completedAt": isoformat_or_none(item.completed_at),
            }
            for item in record.subtask_progress
        ],
        "timeLogs": [
            {
                "id": log.time_log_id,
                "hours": log.hours,
                "description": log.description,
                "loggedAt": isoformat_or_none(log.logged_at),
            }
            for log in record.time_logs
        ],
    }


def serialize_attendance(record) -> dict:
    return {
        "id": record.attendance_id,
        "userId": record.user_id,
        "date": record.date.isoformat(),
        "checkIn": isoformat_or_none(record.check_in),
        "checkOut": isoformat_or_none(record.check_out),
        "status": _value(record.status),
        "workingHours": record.working_hours,
    }


def serialize_cohort(cohort) -> dict:
    return {
        "id": cohort.cohort_id,
        "name": cohort.name,
        "description": cohort.description,
        "startDate": isoformat_or_none(cohort.start_date),
        "endDate": isoformat_or_none(cohort.end_date),
        "collegeId": cohort.college_id,
        "techLeadId": cohort.tech_lead_id,
        "maxInterns": cohort.max_interns,
        "isActive": cohort.is_active,
    }


def serialize_college(college) -> dict:
    return {
        "id": college.college_id,
        "name": college.name,
        "description": college.description,
        "location": college.location,
        "pocId": college.poc_id,
        "isActive": college.is_active,
    }
