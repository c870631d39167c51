from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field, field_validator
from pymongo import ASCENDING, IndexModel

from app.models.common import ApiModel


class Branch(str, Enum):
    MAIN = "Main"
    UGAR = "Ugar"
    MANGASULI = "Mangasuli"


class SchoolClass(Document):
    """School class (e.g., "LKG", "Class 7"). Permanent across academic years."""
    name: Indexed(str)
    section: Optional[str] = None  # e.g., "A", "B"
    branch: Branch = Branch.MAIN
    class_teacher_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "classes"
        use_state_management = True
        indexes = [
            IndexModel(
                [("name", ASCENDING), ("section", ASCENDING), ("branch", ASCENDING)],
                unique=True,
                name="name_section_branch_unique",
            ),
        ]


class SchoolClassCreate(ApiModel):
    name: str
    section: Optional[str] = None
    branch: Branch = Branch.MAIN
    class_teacher_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Class name is required")
        return value

    @field_validator("section")
    @classmethod
    def _strip_section(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class SchoolClassOut(ApiModel):
    id: str
    name: str
    section: Optional[str] = None
    branch: Branch
    class_teacher_id: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.name} {self.section or ''}".strip()
