from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from app.models.common import ApiModel


class Exam(Document):
    """An exam held for a class and subject within an academic year."""
    name: str
    type: str  # unit-test, mid-term, final, practical, assignment
    class_id: str
    subject: str
    total_marks: float
    date: Optional[datetime] = None
    academic_year_id: Optional[str] = None
    created_by: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "exams"
        indexes = [
            IndexModel([("academic_year_id", ASCENDING)]),
            IndexModel([("class_id", ASCENDING), ("subject", ASCENDING)]),
        ]


class Marks(Document):
    """Marks obtained by one student in one exam."""
    student_id: str
    exam_id: Indexed(str)
    marks_obtained: float
    grade: Optional[str] = None
    percentage: Optional[float] = None
    remarks: Optional[str] = None
    entered_by: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "marks"
        indexes = [
            IndexModel([("student_id", ASCENDING), ("exam_id", ASCENDING)], unique=True),
        ]


class MarkEntry(ApiModel):
    """A mark joined with its exam and student names, as shown in year reports."""
    student_id: str
    student_name: Optional[str] = None
    exam_id: str
    exam_name: str
    subject: str
    total_marks: float
    marks_obtained: float
    grade: Optional[str] = None
    percentage: Optional[float] = None
