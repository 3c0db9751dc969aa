"""Constants for user roles, task and progress statuses, attendance statuses and leaderboard options."""

from enum import Enum


class UserRole(str, Enum):
    """Enumeration of user roles within the internship program."""

    admin = "admin"
    poc = "poc"  # College point-of-contact
    tech_lead = "tech_lead"
    intern = "intern"
    pending = "pending"  # First sign-in, awaiting assignment


STAFF_ROLES = (UserRole.admin, UserRole.poc, UserRole.tech_lead)


class TaskStatus(str, Enum):
    """Enumeration of task lifecycle statuses."""

    draft = "draft"
    active = "active"
    in_progress = "in_progress"
    in_review = "in_review"
    completed = "completed"
    cancelled = "cancelled"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class AssignmentMode(str, Enum):
    """A task goes to a single intern or to every intern of a cohort."""

    individual = "individual"
    cohort = "cohort"


class ProgressStatus(str, Enum):
    """Enumeration of per-intern task progress statuses."""

    not_started = "not_started"
    in_progress = "in_progress"
    in_review = "in_review"
    completed = "completed"
    approved = "approved"
    cancelled = "cancelled"


COMPLETION_STATUSES = (ProgressStatus.completed, ProgressStatus.approved)

# A submission under review with at least this much progress counts as done.
REVIEW_COMPLETION_THRESHOLD = 90

# Ordering used by the task progress overview.
STATUS_PRIORITY = {
    ProgressStatus.approved: 5,
    ProgressStatus.completed: 4,
    ProgressStatus.in_review: 3,
    ProgressStatus.in_progress: 2,
    ProgressStatus.not_started: 1,
    ProgressStatus.cancelled: 0,
}


class AttendanceStatus(str, Enum):
    present = "present"
    late = "late"
    half_day = "half_day"
    absent = "absent"


class LeaderboardScope(str, Enum):
    college = "college"
    cohort = "cohort"
    global_ = "global"


class LeaderboardMetric(str, Enum):
    points_earned = "points-earned"
    tasks_completed = "tasks-completed"
    completion_rate = "completion-rate"
    hours_logged = "hours-logged"
    streak_days = "streak-days"


class LeaderboardPeriod(str, Enum):
    all_time = "all-time"
    this_week = "this-week"
    this_month = "this-month"


TASK_CATEGORIES = [
    {"id": "development", "name": "Development"},
    {"id": "research", "name": "Research"},
    {"id": "learning", "name": "Learning"},
    {"id": "documentation", "name": "Documentation"},
    {"id": "design", "name": "Design"},
    {"id": "review", "name": "Review"},
    {"id": "other", "name": "Other"},
]
