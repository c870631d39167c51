"""Beanie document models and Pydantic schemas."""
from app.models.user import User, UserRole, StudentCreate, StudentOut, EnrollmentUpdate, UserInDB
from app.models.academic_year import (
    AcademicYear,
    AcademicYearCreate,
    AcademicYearActivate,
    AcademicYearOut,
    YearIncrementRequest,
)
from app.models.school_class import Branch, SchoolClass, SchoolClassCreate, SchoolClassOut
from app.models.student_history import (
    HistoryResult,
    StudentHistory,
    StudentHistoryCreate,
    StudentHistoryOut,
)
from app.models.exam import Exam, Marks, MarkEntry
from app.models.leave_request import LeaveRequest, LeaveEntry
from app.models.attendance import Attendance, AttendanceSummary

__all__ = [
    "User",
    "UserRole",
    "StudentCreate",
    "StudentOut",
    "EnrollmentUpdate",
    "UserInDB",
    "AcademicYear",
    "AcademicYearCreate",
    "AcademicYearActivate",
    "AcademicYearOut",
    "YearIncrementRequest",
    "Branch",
    "SchoolClass",
    "SchoolClassCreate",
    "SchoolClassOut",
    "HistoryResult",
    "StudentHistory",
    "StudentHistoryCreate",
    "StudentHistoryOut",
    "Exam",
    "Marks",
    "MarkEntry",
    "LeaveRequest",
    "LeaveEntry",
    "Attendance",
    "AttendanceSummary",
]
