"""Attendance model with status and working hours derived on save."""

from sqlalchemy import Column, Date, DateTime, Enum as SQLEnum, Float, ForeignKey, String, UniqueConstraint, event

from internlink.constants.constants import AttendanceStatus
from internlink.models.base import Base, TimestampMixin, new_id
from internlink.utils.attendance import default_policy, derive_attendance


class Attendance(Base, TimestampMixin):
    """Model representing a user's attendance for one calendar day."""

    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
    )

    attendance_id = Column(String, primary_key=True, index=True, default=new_id)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    check_in = Column(DateTime, nullable=True)
    check_out = Column(DateTime, nullable=True)
    status = Column(SQLEnum(AttendanceStatus), default=AttendanceStatus.absent, nullable=False)
    working_hours = Column(Float, default=0, nullable=False)


@event.listens_for(Attendance, "before_insert")
@event.listens_for(Attendance, "before_update")
def _derive_attendance_fields(mapper, connection, target):
    target.status, target.working_hours = derive_attendance(
        target.check_in, target.check_out, default_policy()
    )
