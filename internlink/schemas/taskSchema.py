from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field, field_validator

from internlink.constants.constants import TaskPriority, TaskStatus
from internlink.schemas.baseSchema import CamelModel


class IndividualAssignment(CamelModel):
    mode: Literal["individual"]
    assignee_id: str = Field(..., min_length=1)


class CohortAssignment(CamelModel):
    mode: Literal["cohort"]
    cohort_id: str = Field(..., min_length=1)


Assignment = Annotated[
    Union[IndividualAssignment, CohortAssignment],
    Field(discriminator="mode"),
]


class SubtaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)


class TaskCreateRequest(CamelModel):
    """Request schema for creating a new task."""
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    category: str = Field(..., min_length=1)
    due_date: datetime
    assignment: Assignment
    priority: TaskPriority = TaskPriority.medium
    points: Optional[int] = Field(None, ge=0)
    estimated_hours: float = Field(0, ge=0)
    status: TaskStatus = TaskStatus.active
    subtasks: List[SubtaskCreate] = Field(default_factory=list)

    @field_validator("status")
    @classmethod
    def initial_status(cls, value: TaskStatus) -> TaskStatus:
        if value not in (TaskStatus.draft, TaskStatus.active):
            raise ValueError("A new task must be draft or active")
        return value


class TaskUpdateRequest(CamelModel):
    """Request schema for updating a task; subtasks, when given, replace the list."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    category: Optional[str] = Field(None, min_length=1)
    due_date: Optional[datetime] = None
    assignment: Optional[Assignment] = None
    priority: Optional[TaskPriority] = None
    points: Optional[int] = Field(None, ge=0)
    estimated_hours: Optional[float] = Field(None, ge=0)
    subtasks: Optional[List[SubtaskCreate]] = None


class TaskStatusUpdateRequest(CamelModel):
    """Request schema for updating task status."""
    status: TaskStatus


class CommentCreateRequest(CamelModel):
    content: str = Field(..., min_length=1, max_length=5000)
