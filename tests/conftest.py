"""
Shared test fixtures.

Services are exercised against an in-memory SchoolStore that enforces the same
uniqueness rules as the MongoDB indexes; API tests override get_store and
get_current_user so no database or token is needed.
"""
import asyncio
import copy
import itertools
import os
from contextlib import asynccontextmanager
from datetime import datetime

os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_current_user, get_store
from app.errors import ArchiveError, DuplicateNameError, NotFoundError, StoreError
from app.main import app
from app.models.academic_year import AcademicYearCreate, AcademicYearOut
from app.models.school_class import Branch, SchoolClassCreate, SchoolClassOut
from app.models.student_history import StudentHistoryCreate, StudentHistoryOut
from app.models.user import StudentCreate, StudentOut, UserInDB, UserRole
from app.services.store import EnrolledStudent


def run(coro):
    return asyncio.run(coro)


class InMemorySchoolStore:
    supports_transactions = False

    def __init__(self):
        self.years: dict[str, AcademicYearOut] = {}
        self.classes: dict[str, SchoolClassOut] = {}
        self.students: dict[str, StudentOut] = {}
        self.users: dict[str, UserInDB] = {}
        self.history: list[StudentHistoryOut] = []
        self.marks = []
        self.leaves = []
        self.attendance = []
        self.failing_students: set[str] = set()
        self.writes: list[tuple[str, str]] = []
        self._ids = itertools.count(1)

    def _new_id(self) -> str:
        return f"{next(self._ids):024x}"

    @asynccontextmanager
    async def transaction(self):
        yield

    # --- seeding helpers ---

    def add_year(self, name: str, start_year: int, active: bool = False) -> AcademicYearOut:
        year = AcademicYearOut(
            id=self._new_id(),
            name=name,
            start_date=datetime(start_year, 6, 1),
            end_date=datetime(start_year + 1, 5, 31),
            is_active=active,
        )
        self.years[year.id] = year
        return year

    def add_class(self, name: str, branch: Branch = Branch.MAIN, section: str | None = None) -> SchoolClassOut:
        school_class = SchoolClassOut(id=self._new_id(), name=name, section=section, branch=branch)
        self.classes[school_class.id] = school_class
        return school_class

    def add_student(self, name: str, class_id: str | None, year_id: str | None) -> StudentOut:
        student = StudentOut(
            id=self._new_id(),
            name=name,
            phone=f"9{len(self.students):09d}",
            current_class_id=class_id,
            academic_year_id=year_id,
        )
        self.students[student.id] = student
        self.users[student.id] = UserInDB(
            id=student.id, name=name, phone=student.phone, role=UserRole.STUDENT, is_active=True
        )
        return student

    def active_years(self) -> list[AcademicYearOut]:
        return [y for y in self.years.values() if y.is_active]

    # --- academic years ---

    async def get_year(self, year_id):
        return self.years.get(year_id)

    async def get_year_by_name(self, name):
        return next((y for y in self.years.values() if y.name == name), None)

    async def get_active_year(self):
        return next((y for y in self.years.values() if y.is_active), None)

    async def list_years(self):
        return sorted(self.years.values(), key=lambda y: y.start_date, reverse=True)

    async def insert_year(self, data: AcademicYearCreate):
        if await self.get_year_by_name(data.name):
            raise DuplicateNameError("Academic year already exists")
        year = AcademicYearOut(
            id=self._new_id(),
            name=data.name,
            start_date=data.start_date,
            end_date=data.end_date,
            is_active=False,
        )
        self.years[year.id] = year
        self.writes.append(("insert_year", year.id))
        return year

    async def activate_year(self, year_id):
        if year_id not in self.years:
            raise NotFoundError("Academic year not found")
        for year in self.years.values():
            year.is_active = year.id == year_id
        self.writes.append(("activate", year_id))
        return self.years[year_id]

    # --- classes ---

    async def get_class(self, class_id):
        return self.classes.get(class_id)

    async def get_classes(self, class_ids):
        return {c: self.classes[c] for c in class_ids if c in self.classes}

    async def list_classes(self, branch=None):
        return sorted(
            (c for c in self.classes.values() if branch is None or c.branch == branch),
            key=lambda c: c.name,
        )

    async def insert_class(self, data: SchoolClassCreate):
        for c in self.classes.values():
            if (c.name, c.section, c.branch) == (data.name, data.section, data.branch):
                raise DuplicateNameError(f"{c.label} already exists in branch {c.branch.value}")
        school_class = SchoolClassOut(id=self._new_id(), **data.model_dump())
        self.classes[school_class.id] = school_class
        return school_class

    async def find_class_containing(self, fragment, branch):
        return next(
            (c for c in self.classes.values() if fragment in c.name and c.branch == branch),
            None,
        )

    # --- students ---

    async def get_student(self, student_id):
        return self.students.get(student_id)

    async def get_users(self, user_ids):
        return {u: self.users[u] for u in user_ids if u in self.users}

    async def list_students(self, class_id=None, academic_year_id=None):
        return [
            s
            for s in self.students.values()
            if (class_id is None or s.current_class_id == class_id)
            and (academic_year_id is None or s.academic_year_id == academic_year_id)
        ]

    async def list_enrolled_students(self, year_id):
        return [
            EnrolledStudent(
                student=s.model_copy(),
                current_class=self.classes.get(s.current_class_id) if s.current_class_id else None,
            )
            for s in self.students.values()
            if s.academic_year_id == year_id
        ]

    async def insert_student(self, data: StudentCreate, hashed_password, academic_year_id):
        if any(s.phone == data.phone for s in self.students.values()):
            raise DuplicateNameError("Phone number already registered")
        student = StudentOut(
            id=self._new_id(),
            name=data.name,
            phone=data.phone,
            email=data.email,
            current_class_id=data.class_id,
            academic_year_id=academic_year_id,
            guardian_name=data.guardian_name,
            guardian_phone=data.guardian_phone,
        )
        self.students[student.id] = student
        return student

    async def update_enrollment(self, student_id, class_id, academic_year_id):
        if student_id in self.failing_students:
            raise StoreError(f"Failed to update student {student_id}: connection reset")
        student = self.students.get(student_id)
        if not student:
            raise NotFoundError("Student not found")
        student.current_class_id = class_id
        student.academic_year_id = academic_year_id
        self.writes.append(("enroll", student_id))
        return student

    # --- history ---

    async def insert_history(self, records: list[StudentHistoryCreate]):
        existing = {(h.student_id, h.academic_year_id) for h in self.history}
        batch = set()
        for r in records:
            key = (r.student_id, r.academic_year_id)
            if key in existing or key in batch:
                raise ArchiveError("Student history already recorded for this academic year")
            batch.add(key)
        rows = [StudentHistoryOut(id=self._new_id(), **r.model_dump()) for r in records]
        self.history.extend(rows)
        self.writes.append(("history", str(len(rows))))
        return rows

    async def list_history(self, year_id=None, student_id=None):
        return [
            h
            for h in self.history
            if (year_id is None or h.academic_year_id == year_id)
            and (student_id is None or h.student_id == student_id)
        ]

    # --- reports ---

    async def list_exam_marks(self, year_id):
        return list(self.marks)

    async def list_staff_leaves(self, start, end):
        return [lv for lv in self.leaves if start <= lv.start_date <= end]

    async def staff_attendance_summary(self, start, end):
        return list(self.attendance)


class TransactionalInMemoryStore(InMemorySchoolStore):
    """Rolls every collection back when the transaction body raises."""

    supports_transactions = True

    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy((self.years, self.classes, self.students, self.history))
        try:
            yield
        except Exception:
            self.years, self.classes, self.students, self.history = snapshot
            raise


def make_user(role: UserRole, name: str = "Test User") -> UserInDB:
    return UserInDB(id="0000000000000000000000ff", name=name, phone="9876543210", role=role, is_active=True)


@pytest.fixture
def store():
    return InMemorySchoolStore()


@pytest.fixture
def acting_user():
    return make_user(UserRole.SUPER_ADMIN, "Principal")


@pytest.fixture
def client(store):
    """HTTP test client over the in-memory store, logged in as a super admin."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_current_user] = lambda: make_user(UserRole.SUPER_ADMIN)
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def login_as():
    """Switch the authenticated user's role for the client fixture."""
    def _login(role: UserRole):
        app.dependency_overrides[get_current_user] = lambda: make_user(role)
    return _login
