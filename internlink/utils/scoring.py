"""
Shared scoring rules: the single definition of "completed", points earned,
completion rates, progress overview summaries and leaderboard ranking.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Sequence

from internlink.constants.constants import (
    COMPLETION_STATUSES,
    REVIEW_COMPLETION_THRESHOLD,
    STATUS_PRIORITY,
    LeaderboardMetric,
    ProgressStatus,
)
from internlink.core.config import settings


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_percent(part: float, whole: float) -> int:
    """Percentage of part in whole, rounded half up; 0 when whole is 0."""
    if not whole:
        return 0
    return round_half_up(part / whole * 100)


def resolve_points(points: Optional[int], default: Optional[int] = None) -> int:
    """A task's point value, falling back to the configured default when unset."""
    if points is None:
        return settings.DEFAULT_TASK_POINTS if default is None else default
    return points


def is_completed(status: ProgressStatus, progress: int) -> bool:
    if status in COMPLETION_STATUSES:
        return True
    return status == ProgressStatus.in_review and progress >= REVIEW_COMPLETION_THRESHOLD


@dataclass
class ProgressSnapshot:
    """An (intern, task) progress view; synthesized as not started when no record exists."""

    task_id: str
    intern_id: str
    task_points: int
    status: ProgressStatus = ProgressStatus.not_started
    progress: int = 0
    points_earned: int = 0
    actual_hours: float = 0.0
    needs_help: bool = False
    progress_id: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    submission_url: Optional[str] = None
    submission_notes: Optional[str] = None
    help_message: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def completed(self) -> bool:
        return is_completed(self.status, self.progress)

    @classmethod
    def from_record(cls, record, task_points: int) -> "ProgressSnapshot":
        return cls(
            task_id=record.task_id,
            intern_id=record.intern_id,
            task_points=task_points,
            status=record.status,
            progress=record.progress,
            points_earned=record.points_earned,
            actual_hours=record.actual_hours or 0.0,
            needs_help=record.needs_help,
            progress_id=record.progress_id,
            started_at=record.started_at,
            completed_at=record.completed_at,
            submission_url=record.submission_url,
            submission_notes=record.submission_notes,
            help_message=record.help_message,
            updated_at=record.updated_at,
        )


@dataclass
class InternStats:
    total_tasks: int = 0
    completed_tasks: int = 0
    completion_rate: int = 0
    points_earned: int = 0
    hours_logged: float = 0.0


def summarize_intern(snapshots: Iterable[ProgressSnapshot]) -> InternStats:
    """Aggregate one intern's snapshots; points are the task values of completed tasks."""
    snapshots = list(snapshots)
    completed = [s for s in snapshots if s.completed]
    return InternStats(
        total_tasks=len(snapshots),
        completed_tasks=len(completed),
        completion_rate=round_percent(len(completed), len(snapshots)),
        points_earned=sum(s.task_points for s in completed),
        hours_logged=round(sum(s.actual_hours for s in snapshots), 1),
    )


def summarize_overview(snapshots: Sequence[ProgressSnapshot]) -> dict:
    """Summary block of the task progress overview."""
    total = len(snapshots)
    completed = sum(1 for s in snapshots if s.completed)
    return {
        "totalInterns": total,
        "completedCount": completed,
        "inProgressCount": sum(1 for s in snapshots if s.status == ProgressStatus.in_progress),
        "reviewCount": sum(1 for s in snapshots if s.status == ProgressStatus.in_review),
        "notStartedCount": sum(1 for s in snapshots if s.status == ProgressStatus.not_started),
        "needsHelpCount": sum(1 for s in snapshots if s.needs_help),
        "averageProgress": round_half_up(sum(s.progress for s in snapshots) / total) if total else 0,
        "totalPointsEarned": sum(s.task_points for s in snapshots if s.completed),
        "totalHoursLogged": round(sum(s.actual_hours for s in snapshots), 1),
        "completionRate": round_percent(completed, total),
    }


def overview_sort_key(snapshot: ProgressSnapshot):
    """Status priority first, then percent complete, both descending."""
    return (-STATUS_PRIORITY.get(snapshot.status, 0), -snapshot.progress)


@dataclass
class LeaderboardEntry:
    intern_id: str
    name: str
    username: str
    avatar: Optional[str] = None
    college_id: Optional[str] = None
    cohort_id: Optional[str] = None
    total_tasks: int = 0
    tasks_completed: int = 0
    completion_rate: int = 0
    points_earned: int = 0
    hours_logged: float = 0.0
    streak_days: int = 0
    rank: int = 0
    is_current_user: bool = False


METRIC_FIELDS = {
    LeaderboardMetric.points_earned: "points_earned",
    LeaderboardMetric.tasks_completed: "tasks_completed",
    LeaderboardMetric.completion_rate: "completion_rate",
    LeaderboardMetric.hours_logged: "hours_logged",
    LeaderboardMetric.streak_days: "streak_days",
}


def rank_leaderboard(
    entries: Sequence[LeaderboardEntry],
    metric: LeaderboardMetric = LeaderboardMetric.points_earned,
) -> list[LeaderboardEntry]:
    """
    Sort descending by the metric, then by completed tasks; ties keep fetch
    order. Ranks are the 1-based sorted positions, so they form 1..N.
    """
    metric_field = METRIC_FIELDS[metric]
    ranked = sorted(
        entries,
        key=lambda e: (-getattr(e, metric_field), -e.tasks_completed),
    )
    for position, entry in enumerate(ranked, start=1):
        entry.rank = position
    return ranked
