from typing import List, Optional

from pydantic import Field

from internlink.schemas.baseSchema import CamelModel


class TaskProgressAdminRequest(CamelModel):
    """Body of POST /admin/task-progress; `action` may also come from the query string."""
    action: Optional[str] = None
    task_id: Optional[str] = None
    cohort_id: Optional[str] = None
    intern_ids: Optional[List[str]] = Field(None, max_length=1000)
