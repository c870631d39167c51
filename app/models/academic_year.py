from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field, field_validator, model_validator

from app.models.common import ApiModel


class AcademicYear(Document):
    """Academic year master records. At most one is active at a time."""
    name: Indexed(str, unique=True)  # e.g., "2024-2025"
    start_date: datetime
    end_date: datetime
    is_active: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "academic_years"
        use_state_management = True


class AcademicYearCreate(ApiModel):
    name: str
    start_date: datetime
    end_date: datetime
    is_active: bool = False

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Academic year name is required")
        return value

    @model_validator(mode="after")
    def _check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        return self


class AcademicYearActivate(ApiModel):
    id: str


class YearIncrementRequest(ApiModel):
    next_year_id: str


class AcademicYearOut(ApiModel):
    id: str
    name: str
    start_date: datetime
    end_date: datetime
    is_active: bool
    created_at: Optional[datetime] = None
