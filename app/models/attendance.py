from datetime import datetime
from typing import Optional
from beanie import Document, Indexed
from pydantic import Field

from app.models.common import ApiModel


class Attendance(Document):
    """One attendance mark for a user (student or staff) on a date."""
    user_id: Indexed(str)
    role: str  # role of the marked user at the time of marking
    class_id: Optional[str] = None
    date: Indexed(datetime)
    status: str  # present, absent, late, excused
    marked_by: str  # user_id
    period: Optional[int] = None
    remarks: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "attendance"


class AttendanceSummary(ApiModel):
    """Per-user count of attendance marks with a given status."""
    user_id: str
    user: Optional[str] = None
    status: str
    count: int
