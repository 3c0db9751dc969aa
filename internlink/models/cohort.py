"""Cohort model: a group of interns sharing a timeline."""

from sqlalchemy import Column, String, Text, DateTime, Boolean, Integer, ForeignKey
from internlink.models.base import Base, TimestampMixin, new_id


class Cohort(Base, TimestampMixin):
    """Model representing an intern cohort, the unit of bulk task assignment."""

    __tablename__ = "cohorts"
    cohort_id = Column(String, primary_key=True, index=True, default=new_id)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    college_id = Column(String, ForeignKey("colleges.college_id"), nullable=True, index=True)
    tech_lead_id = Column(String, ForeignKey("users.user_id", use_alter=True), nullable=True, index=True)
    max_interns = Column(Integer, default=50, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
