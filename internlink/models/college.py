"""College model for the InternLink system."""

from sqlalchemy import Column, String, Text, Boolean, ForeignKey
from internlink.models.base import Base, TimestampMixin, new_id


class College(Base, TimestampMixin):
    """Model representing a partner college and its point-of-contact."""

    __tablename__ = "colleges"
    college_id = Column(String, primary_key=True, index=True, default=new_id)
    name = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String, nullable=True)
    poc_id = Column(String, ForeignKey("users.user_id", use_alter=True), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
