from typing import Optional

from pydantic import Field

from internlink.schemas.baseSchema import CamelModel


class ProgressUpdateRequest(CamelModel):
    progress: int = Field(..., ge=0, le=100)


class SubmitRequest(CamelModel):
    submission_url: str = Field(..., min_length=1, max_length=2000)
    notes: Optional[str] = Field(None, max_length=5000)


class SubtaskStateRequest(CamelModel):
    completed: bool


class TimeLogRequest(CamelModel):
    hours: float = Field(..., gt=0, le=24)
    description: Optional[str] = Field(None, max_length=2000)


class HelpRequest(CamelModel):
    message: str = Field(..., min_length=1, max_length=2000)


class ReviewRequest(CamelModel):
    approve: bool
    grade: Optional[int] = Field(None, ge=0, le=100)
    feedback: Optional[str] = Field(None, max_length=5000)
