"""User model for the InternLink system."""

from sqlalchemy import Column, String, DateTime, Boolean, Enum, ForeignKey

from internlink.constants.constants import UserRole
from internlink.models.base import Base, TimestampMixin, new_id


class User(Base, TimestampMixin):
    __tablename__ = "users"
    user_id = Column(String, primary_key=True, index=True, default=new_id)
    username = Column(String, unique=True, index=True, nullable=False)
    gitlab_id = Column(String, unique=True, index=True, nullable=True)
    email = Column(String, index=True, nullable=True)
    name = Column(String, nullable=False)
    avatar = Column(String, nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.pending, index=True)
    college_id = Column(String, ForeignKey("colleges.college_id"), nullable=True, index=True)
    cohort_id = Column(String, ForeignKey("cohorts.cohort_id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)
