"""Task models: the unit of work, its ordered subtasks and its comment thread."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from internlink.constants.constants import AssignmentMode, TaskPriority, TaskStatus
from internlink.models.base import Base, TimestampMixin, new_id, utcnow


class Task(Base, TimestampMixin):
    """Model representing a task assigned to one intern or to a whole cohort."""

    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint(
            "(assignment_mode = 'individual' AND assignee_id IS NOT NULL AND cohort_id IS NULL)"
            " OR (assignment_mode = 'cohort' AND cohort_id IS NOT NULL AND assignee_id IS NULL)",
            name="ck_tasks_single_assignment",
        ),
        CheckConstraint("points IS NULL OR points >= 0", name="ck_tasks_points_non_negative"),
    )

    task_id = Column(String, primary_key=True, index=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    status = Column(SQLEnum(TaskStatus), default=TaskStatus.active, nullable=False, index=True)
    priority = Column(SQLEnum(TaskPriority), default=TaskPriority.medium, nullable=False)
    category = Column(String, nullable=False, index=True)
    assignment_mode = Column(SQLEnum(AssignmentMode), nullable=False)
    assignee_id = Column(String, ForeignKey("users.user_id"), nullable=True, index=True)
    cohort_id = Column(String, ForeignKey("cohorts.cohort_id"), nullable=True, index=True)
    points = Column(Integer, nullable=True)
    due_date = Column(DateTime, nullable=False, index=True)
    estimated_hours = Column(Float, default=0, nullable=False)
    created_by = Column(String, ForeignKey("users.user_id"), nullable=True, index=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String, ForeignKey("users.user_id"), nullable=True)

    subtasks = relationship(
        "Subtask",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="Subtask.position",
        lazy="selectin",
    )
    comments = relationship(
        "TaskComment",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskComment.created_at",
        lazy="selectin",
    )


class Subtask(Base):
    """Model representing an ordered checklist item of a task."""

    __tablename__ = "subtasks"
    subtask_id = Column(String, primary_key=True, index=True, default=new_id)
    task_id = Column(String, ForeignKey("tasks.task_id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0)
    task = relationship("Task", back_populates="subtasks")


class TaskComment(Base):
    """Model representing an append-only comment on a task."""

    __tablename__ = "task_comments"
    comment_id = Column(String, primary_key=True, index=True, default=new_id)
    task_id = Column(String, ForeignKey("tasks.task_id"), nullable=False, index=True)
    author_id = Column(String, ForeignKey("users.user_id"), nullable=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    task = relationship("Task", back_populates="comments")
