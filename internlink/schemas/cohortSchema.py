from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from internlink.schemas.baseSchema import CamelModel


class CollegeCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = None
    poc_id: Optional[str] = None


class CohortCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    college_id: Optional[str] = None
    tech_lead_id: Optional[str] = None
    max_interns: int = Field(50, ge=1)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self
