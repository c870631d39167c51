"""Students: admission, class enrollment and per-year history."""
from fastapi import APIRouter

from app.api.deps import AdminOnly, StaffOrAdmin, Store, get_password_hash
from app.errors import NotFoundError
from app.models.student_history import StudentHistoryOut
from app.models.user import EnrollmentUpdate, StudentCreate, StudentOut

router = APIRouter()


async def _require_class(store, class_id: str | None) -> None:
    if class_id and not await store.get_class(class_id):
        raise NotFoundError("Class not found")


@router.get("/", response_model=list[StudentOut])
async def list_students(
    store: Store,
    user: StaffOrAdmin,
    class_id: str | None = None,
    academic_year_id: str | None = None,
):
    return await store.list_students(class_id=class_id, academic_year_id=academic_year_id)


@router.post("/", response_model=StudentOut, status_code=201)
async def create_student(data: StudentCreate, store: Store, admin: AdminOnly):
    """Admit a student into the active academic year, optionally straight into a class."""
    await _require_class(store, data.class_id)
    active = await store.get_active_year()
    return await store.insert_student(
        data,
        hashed_password=get_password_hash(data.password),
        academic_year_id=active.id if active else None,
    )


@router.put("/{student_id}/enrollment", response_model=StudentOut)
async def enroll_student(student_id: str, data: EnrollmentUpdate, store: Store, admin: AdminOnly):
    """Assign (or clear, with classId null) the student's class in the active year."""
    if not await store.get_student(student_id):
        raise NotFoundError("Student not found")
    await _require_class(store, data.class_id)
    active = await store.get_active_year()
    if not active:
        raise NotFoundError("No active academic year set")
    return await store.update_enrollment(student_id, data.class_id, active.id)


@router.get("/{student_id}/history", response_model=list[StudentHistoryOut])
async def student_history(student_id: str, store: Store, user: StaffOrAdmin):
    if not await store.get_student(student_id):
        raise NotFoundError("Student not found")
    return await store.list_history(student_id=student_id)
