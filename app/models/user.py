"""Users: students, teachers, staff, admins, super admins."""
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import EmailStr, Field, field_validator
from pymongo import ASCENDING, IndexModel

from app.models.common import ApiModel


class UserRole(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    STAFF = "staff"
    ADMIN = "admin"
    SUPER_ADMIN = "super admin"


STAFF_ROLES = (UserRole.TEACHER, UserRole.STAFF)


class User(Document):
    """User document for every role. Students carry their class and year enrollment."""

    name: str
    phone: Indexed(str, unique=True)
    email: Optional[EmailStr] = None
    hashed_password: str
    role: UserRole = UserRole.STUDENT
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Student-specific: owned by enrollment and year promotion only
    current_class_id: Optional[str] = None
    academic_year_id: Optional[str] = None
    admission_date: Optional[datetime] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None

    class Settings:
        name = "users"
        use_state_management = True
        indexes = [
            IndexModel([("role", ASCENDING), ("academic_year_id", ASCENDING)]),
        ]


class StudentCreate(ApiModel):
    name: str
    phone: str
    password: str
    email: Optional[EmailStr] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None
    class_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("Name must be at least 3 characters long")
        return value

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        value = value.strip()
        if len(value) != 10 or not value.isdigit():
            raise ValueError("Please enter a valid 10-digit phone number")
        return value

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return value


class EnrollmentUpdate(ApiModel):
    class_id: Optional[str] = None


class StudentOut(ApiModel):
    id: str
    name: str
    phone: str
    email: Optional[str] = None
    current_class_id: Optional[str] = None
    academic_year_id: Optional[str] = None
    guardian_name: Optional[str] = None
    guardian_phone: Optional[str] = None


class UserInDB(ApiModel):
    id: str
    name: str
    phone: str
    email: Optional[str] = None
    role: UserRole
    is_active: bool
