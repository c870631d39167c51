"""Per-year archive of each student's class and result."""
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from app.models.common import ApiModel


class HistoryResult(str, Enum):
    PROMOTED = "Promoted"
    DETAINED = "Detained"
    GRADUATED = "Graduated"
    LEFT = "Left"


class StudentHistory(Document):
    """Immutable snapshot written once per (student, academic year) at year close."""

    student_id: str
    class_id: Optional[str] = None
    academic_year_id: str
    result: HistoryResult = HistoryResult.PROMOTED
    final_grade: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "student_histories"
        indexes = [
            IndexModel(
                [("student_id", ASCENDING), ("academic_year_id", ASCENDING)],
                unique=True,
                name="student_year_unique",
            ),
            IndexModel([("academic_year_id", ASCENDING)]),
        ]


class StudentHistoryCreate(ApiModel):
    student_id: str
    class_id: Optional[str] = None
    academic_year_id: str
    result: HistoryResult = HistoryResult.PROMOTED
    final_grade: str = ""


class StudentHistoryOut(StudentHistoryCreate):
    id: str
    created_at: Optional[datetime] = None
