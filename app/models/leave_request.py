from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field

from app.models.common import ApiModel


class LeaveRequest(Document):
    """Leave request raised by a student or staff member."""
    applicant_id: Indexed(str)
    applicant_role: str
    class_id: Optional[str] = None
    leave_type: str = "full"  # full, half
    start_date: Indexed(datetime)
    end_date: datetime
    reason: str
    status: str = "pending"  # pending, approved, rejected
    action_by: Optional[str] = None
    action_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "leave_requests"


class LeaveEntry(ApiModel):
    id: str
    applicant_id: str
    applicant_name: Optional[str] = None
    applicant_role: str
    start_date: datetime
    end_date: datetime
    reason: str
    status: str
