from typing import Optional

from pydantic import EmailStr, Field

from internlink.constants.constants import UserRole
from internlink.schemas.baseSchema import CamelModel


class UserCreateRequest(CamelModel):
    """Request schema for an administrator creating a user."""
    username: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    gitlab_id: Optional[str] = None
    role: UserRole = UserRole.intern
    college_id: Optional[str] = None
    cohort_id: Optional[str] = None


class UserUpdateRequest(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    college_id: Optional[str] = None
    cohort_id: Optional[str] = None
    is_active: Optional[bool] = None
