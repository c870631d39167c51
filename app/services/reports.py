"""End-of-year report for one academic year."""
from __future__ import annotations

from app.errors import NotFoundError
from app.models.academic_year import AcademicYearOut
from app.models.attendance import AttendanceSummary
from app.models.common import ApiModel
from app.models.exam import MarkEntry
from app.models.leave_request import LeaveEntry
from app.services.store import SchoolStore

UNASSIGNED = "Unassigned"


class StudentSummary(ApiModel):
    id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    result: str


class YearReport(ApiModel):
    academic_year: AcademicYearOut
    class_wise_students: dict[str, list[StudentSummary]]
    marks: list[MarkEntry]
    teacher_leaves: list[LeaveEntry]
    teacher_attendance: list[AttendanceSummary]


async def build_year_report(store: SchoolStore, year_id: str) -> YearReport:
    year = await store.get_year(year_id)
    if not year:
        raise NotFoundError("Academic year not found")

    history = await store.list_history(year_id=year.id)
    classes = await store.get_classes([h.class_id for h in history if h.class_id])
    users = await store.get_users([h.student_id for h in history])

    class_wise: dict[str, list[StudentSummary]] = {}
    for row in history:
        school_class = classes.get(row.class_id) if row.class_id else None
        key = school_class.label if school_class else UNASSIGNED
        user = users.get(row.student_id)
        class_wise.setdefault(key, []).append(
            StudentSummary(
                id=row.student_id,
                name=user.name if user else None,
                email=user.email if user else None,
                phone=user.phone if user else None,
                result=row.result.value,
            )
        )

    return YearReport(
        academic_year=year,
        class_wise_students=class_wise,
        marks=await store.list_exam_marks(year.id),
        teacher_leaves=await store.list_staff_leaves(year.start_date, year.end_date),
        teacher_attendance=await store.staff_attendance_summary(year.start_date, year.end_date),
    )
