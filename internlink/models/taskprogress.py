"""TaskProgress models: the per-intern completion record of a task."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from internlink.constants.constants import ProgressStatus
from internlink.models.base import Base, TimestampMixin, new_id, utcnow


class TaskProgress(Base, TimestampMixin):
    """Model representing one intern's progress on one task."""

    __tablename__ = "task_progress"
    __table_args__ = (
        UniqueConstraint("task_id", "intern_id", name="uq_task_progress_task_intern"),
    )

    progress_id = Column(String, primary_key=True, index=True, default=new_id)
    task_id = Column(String, ForeignKey("tasks.task_id"), nullable=False, index=True)
    intern_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    status = Column(SQLEnum(ProgressStatus), default=ProgressStatus.not_started, nullable=False, index=True)
    progress = Column(Integer, default=0, nullable=False)
    points_earned = Column(Integer, default=0, nullable=False)
    actual_hours = Column(Float, default=0, nullable=False)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    completed_by = Column(String, ForeignKey("users.user_id"), nullable=True)

    submission_url = Column(String, nullable=True)
    submission_notes = Column(Text, nullable=True)
    submitted_at = Column(DateTime, nullable=True)

    reviewed_by = Column(String, ForeignKey("users.user_id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    feedback = Column(Text, nullable=True)
    grade = Column(Integer, nullable=True)

    needs_help = Column(Boolean, default=False, nullable=False)
    help_message = Column(Text, nullable=True)
    help_requested_at = Column(DateTime, nullable=True)

    subtask_progress = relationship(
        "SubtaskProgress",
        back_populates="task_progress",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    time_logs = relationship(
        "TimeLog",
        back_populates="task_progress",
        cascade="all, delete-orphan",
        order_by="TimeLog.logged_at",
        lazy="selectin",
    )


class SubtaskProgress(Base):
    """Model representing an intern's check state for one subtask."""

    __tablename__ = "subtask_progress"
    __table_args__ = (
        UniqueConstraint("progress_id", "subtask_id", name="uq_subtask_progress"),
    )

    subtask_progress_id = Column(String, primary_key=True, index=True, default=new_id)
    progress_id = Column(String, ForeignKey("task_progress.progress_id"), nullable=False, index=True)
    subtask_id = Column(String, ForeignKey("subtasks.subtask_id"), nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    task_progress = relationship("TaskProgress", back_populates="subtask_progress")


class TimeLog(Base):
    """Model representing an append-only time entry against a progress record."""

    __tablename__ = "time_logs"
    time_log_id = Column(String, primary_key=True, index=True, default=new_id)
    progress_id = Column(String, ForeignKey("task_progress.progress_id"), nullable=False, index=True)
    hours = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    logged_at = Column(DateTime, default=utcnow, nullable=False)
    task_progress = relationship("TaskProgress", back_populates="time_logs")
