"""Data-store interface used by the academic year services, and its MongoDB implementation."""
from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncContextManager, Optional, Protocol

from beanie import PydanticObjectId
from beanie.operators import In
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo.errors import BulkWriteError, DuplicateKeyError, PyMongoError

from app.config import settings
from app.db import get_client
from app.errors import ArchiveError, DuplicateNameError, NotFoundError, StoreError
from app.models.academic_year import AcademicYear, AcademicYearCreate, AcademicYearOut
from app.models.attendance import Attendance, AttendanceSummary
from app.models.exam import Exam, MarkEntry, Marks
from app.models.leave_request import LeaveEntry, LeaveRequest
from app.models.school_class import Branch, SchoolClass, SchoolClassCreate, SchoolClassOut
from app.models.student_history import StudentHistory, StudentHistoryCreate, StudentHistoryOut
from app.models.user import STAFF_ROLES, StudentCreate, StudentOut, User, UserInDB, UserRole

logger = logging.getLogger(__name__)


class EnrolledStudent(BaseModel):
    """A student enrolled in a year, with their current class resolved (None if unassigned)."""
    student: StudentOut
    current_class: Optional[SchoolClassOut] = None


class SchoolStore(Protocol):
    """Storage operations the academic year engine depends on."""

    supports_transactions: bool

    def transaction(self) -> AsyncContextManager[None]: ...

    # Academic years
    async def get_year(self, year_id: str) -> AcademicYearOut | None: ...
    async def get_year_by_name(self, name: str) -> AcademicYearOut | None: ...
    async def get_active_year(self) -> AcademicYearOut | None: ...
    async def list_years(self) -> list[AcademicYearOut]: ...
    async def insert_year(self, data: AcademicYearCreate) -> AcademicYearOut: ...
    async def activate_year(self, year_id: str) -> AcademicYearOut: ...

    # Classes
    async def get_class(self, class_id: str) -> SchoolClassOut | None: ...
    async def get_classes(self, class_ids: list[str]) -> dict[str, SchoolClassOut]: ...
    async def list_classes(self, branch: Branch | None = None) -> list[SchoolClassOut]: ...
    async def insert_class(self, data: SchoolClassCreate) -> SchoolClassOut: ...
    async def find_class_containing(self, fragment: str, branch: Branch) -> SchoolClassOut | None: ...

    # Students
    async def get_student(self, student_id: str) -> StudentOut | None: ...
    async def get_users(self, user_ids: list[str]) -> dict[str, UserInDB]: ...
    async def list_students(
        self, class_id: str | None = None, academic_year_id: str | None = None
    ) -> list[StudentOut]: ...
    async def list_enrolled_students(self, year_id: str) -> list[EnrolledStudent]: ...
    async def insert_student(
        self, data: StudentCreate, hashed_password: str, academic_year_id: str | None
    ) -> StudentOut: ...
    async def update_enrollment(
        self, student_id: str, class_id: str | None, academic_year_id: str | None
    ) -> StudentOut: ...

    # History
    async def insert_history(self, records: list[StudentHistoryCreate]) -> list[StudentHistoryOut]: ...
    async def list_history(
        self, year_id: str | None = None, student_id: str | None = None
    ) -> list[StudentHistoryOut]: ...

    # Reports
    async def list_exam_marks(self, year_id: str) -> list[MarkEntry]: ...
    async def list_staff_leaves(self, start: datetime, end: datetime) -> list[LeaveEntry]: ...
    async def staff_attendance_summary(self, start: datetime, end: datetime) -> list[AttendanceSummary]: ...


def _oid(value: str | None) -> PydanticObjectId | None:
    if not value:
        return None
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        return None


def _year_out(doc: AcademicYear) -> AcademicYearOut:
    return AcademicYearOut(
        id=str(doc.id),
        name=doc.name,
        start_date=doc.start_date,
        end_date=doc.end_date,
        is_active=doc.is_active,
        created_at=doc.created_at,
    )


def _class_out(doc: SchoolClass) -> SchoolClassOut:
    return SchoolClassOut(
        id=str(doc.id),
        name=doc.name,
        section=doc.section,
        branch=doc.branch,
        class_teacher_id=doc.class_teacher_id,
    )


def _student_out(doc: User) -> StudentOut:
    return StudentOut(
        id=str(doc.id),
        name=doc.name,
        phone=doc.phone,
        email=doc.email,
        current_class_id=doc.current_class_id,
        academic_year_id=doc.academic_year_id,
        guardian_name=doc.guardian_name,
        guardian_phone=doc.guardian_phone,
    )


def _history_out(doc: StudentHistory) -> StudentHistoryOut:
    return StudentHistoryOut(
        id=str(doc.id),
        student_id=doc.student_id,
        class_id=doc.class_id,
        academic_year_id=doc.academic_year_id,
        result=doc.result,
        final_grade=doc.final_grade,
        created_at=doc.created_at,
    )


class BeanieSchoolStore:
    """SchoolStore over MongoDB (Beanie documents registered in app.db)."""

    def __init__(self, use_transactions: bool | None = None):
        if use_transactions is None:
            use_transactions = settings.mongodb_use_transactions
        self.supports_transactions = use_transactions
        self._session = None

    @asynccontextmanager
    async def transaction(self):
        """Run the enclosed writes in one multi-document transaction, when enabled."""
        if not self.supports_transactions or self._session is not None:
            yield
            return
        async with await get_client().start_session() as session:
            async with session.start_transaction():
                self._session = session
                try:
                    yield
                finally:
                    self._session = None

    # --- Academic years ---

    async def get_year(self, year_id: str) -> AcademicYearOut | None:
        oid = _oid(year_id)
        if oid is None:
            return None
        doc = await AcademicYear.get(oid, session=self._session)
        return _year_out(doc) if doc else None

    async def get_year_by_name(self, name: str) -> AcademicYearOut | None:
        doc = await AcademicYear.find_one(AcademicYear.name == name, session=self._session)
        return _year_out(doc) if doc else None

    async def get_active_year(self) -> AcademicYearOut | None:
        doc = await AcademicYear.find_one(AcademicYear.is_active == True, session=self._session)  # noqa: E712
        return _year_out(doc) if doc else None

    async def list_years(self) -> list[AcademicYearOut]:
        docs = await AcademicYear.find_all(session=self._session).sort("-start_date").to_list()
        return [_year_out(d) for d in docs]

    async def insert_year(self, data: AcademicYearCreate) -> AcademicYearOut:
        doc = AcademicYear(name=data.name, start_date=data.start_date, end_date=data.end_date, is_active=False)
        try:
            await doc.insert(session=self._session)
        except DuplicateKeyError as exc:
            raise DuplicateNameError("Academic year already exists") from exc
        return _year_out(doc)

    async def activate_year(self, year_id: str) -> AcademicYearOut:
        oid = _oid(year_id)
        if oid is None:
            raise NotFoundError("Academic year not found")
        async with self.transaction():
            doc = await AcademicYear.get(oid, session=self._session)
            if not doc:
                raise NotFoundError("Academic year not found")
            now = datetime.utcnow()
            await AcademicYear.find(
                AcademicYear.id != oid, AcademicYear.is_active == True, session=self._session  # noqa: E712
            ).update({"$set": {"is_active": False, "updated_at": now}}, session=self._session)
            doc.is_active = True
            doc.updated_at = now
            await doc.save(session=self._session)
        return _year_out(doc)

    # --- Classes ---

    async def get_class(self, class_id: str) -> SchoolClassOut | None:
        oid = _oid(class_id)
        if oid is None:
            return None
        doc = await SchoolClass.get(oid, session=self._session)
        return _class_out(doc) if doc else None

    async def get_classes(self, class_ids: list[str]) -> dict[str, SchoolClassOut]:
        oids = [o for o in (_oid(c) for c in set(class_ids)) if o is not None]
        if not oids:
            return {}
        docs = await SchoolClass.find(In(SchoolClass.id, oids), session=self._session).to_list()
        return {str(d.id): _class_out(d) for d in docs}

    async def list_classes(self, branch: Branch | None = None) -> list[SchoolClassOut]:
        query = {}
        if branch:
            query["branch"] = branch.value
        docs = await SchoolClass.find(query, session=self._session).sort("name").to_list()
        return [_class_out(d) for d in docs]

    async def insert_class(self, data: SchoolClassCreate) -> SchoolClassOut:
        doc = SchoolClass(**data.model_dump())
        try:
            await doc.insert(session=self._session)
        except DuplicateKeyError as exc:
            label = f"{data.name} {data.section or ''}".strip()
            raise DuplicateNameError(f"{label} already exists in branch {data.branch.value}") from exc
        return _class_out(doc)

    async def find_class_containing(self, fragment: str, branch: Branch) -> SchoolClassOut | None:
        try:
            doc = await SchoolClass.find_one(
                {"name": {"$regex": re.escape(fragment)}, "branch": branch.value},
                session=self._session,
            )
        except PyMongoError as exc:
            raise StoreError(f"Failed to look up class {fragment} in {branch.value}: {exc}") from exc
        return _class_out(doc) if doc else None

    # --- Students ---

    async def _get_student_doc(self, student_id: str) -> User | None:
        oid = _oid(student_id)
        if oid is None:
            return None
        doc = await User.get(oid, session=self._session)
        if not doc or doc.role != UserRole.STUDENT:
            return None
        return doc

    async def get_student(self, student_id: str) -> StudentOut | None:
        doc = await self._get_student_doc(student_id)
        return _student_out(doc) if doc else None

    async def get_users(self, user_ids: list[str]) -> dict[str, UserInDB]:
        oids = [o for o in (_oid(u) for u in set(user_ids)) if o is not None]
        if not oids:
            return {}
        docs = await User.find(In(User.id, oids), session=self._session).to_list()
        return {
            str(d.id): UserInDB(id=str(d.id), name=d.name, phone=d.phone, email=d.email, role=d.role, is_active=d.is_active)
            for d in docs
        }

    async def list_students(self, class_id: str | None = None, academic_year_id: str | None = None) -> list[StudentOut]:
        query = {"role": UserRole.STUDENT.value}
        if class_id:
            query["current_class_id"] = class_id
        if academic_year_id:
            query["academic_year_id"] = academic_year_id
        docs = await User.find(query, session=self._session).sort("name").to_list()
        return [_student_out(d) for d in docs]

    async def list_enrolled_students(self, year_id: str) -> list[EnrolledStudent]:
        docs = await User.find(
            User.role == UserRole.STUDENT, User.academic_year_id == year_id, session=self._session
        ).to_list()
        classes = await self.get_classes([d.current_class_id for d in docs if d.current_class_id])
        return [
            EnrolledStudent(
                student=_student_out(d),
                current_class=classes.get(d.current_class_id) if d.current_class_id else None,
            )
            for d in docs
        ]

    async def insert_student(
        self, data: StudentCreate, hashed_password: str, academic_year_id: str | None
    ) -> StudentOut:
        doc = User(
            name=data.name,
            phone=data.phone,
            email=data.email,
            hashed_password=hashed_password,
            role=UserRole.STUDENT,
            guardian_name=data.guardian_name,
            guardian_phone=data.guardian_phone,
            current_class_id=data.class_id,
            academic_year_id=academic_year_id,
            admission_date=datetime.utcnow(),
        )
        try:
            await doc.insert(session=self._session)
        except DuplicateKeyError as exc:
            raise DuplicateNameError("Phone number already registered") from exc
        return _student_out(doc)

    async def update_enrollment(
        self, student_id: str, class_id: str | None, academic_year_id: str | None
    ) -> StudentOut:
        try:
            doc = await self._get_student_doc(student_id)
            if not doc:
                raise NotFoundError("Student not found")
            doc.current_class_id = class_id
            doc.academic_year_id = academic_year_id
            doc.updated_at = datetime.utcnow()
            await doc.save(session=self._session)
        except PyMongoError as exc:
            raise StoreError(f"Failed to update student {student_id}: {exc}") from exc
        return _student_out(doc)

    # --- History ---

    async def insert_history(self, records: list[StudentHistoryCreate]) -> list[StudentHistoryOut]:
        if not records:
            return []
        student_ids = [r.student_id for r in records]
        year_ids = list({r.academic_year_id for r in records})
        existing = await StudentHistory.find(
            In(StudentHistory.student_id, student_ids),
            In(StudentHistory.academic_year_id, year_ids),
            session=self._session,
        ).count()
        if existing:
            raise ArchiveError(f"{existing} history record(s) already exist for this academic year")

        # Ids are assigned up front so a failed batch can be removed exactly.
        docs = [StudentHistory(id=PydanticObjectId(), **r.model_dump()) for r in records]
        try:
            await StudentHistory.insert_many(docs, session=self._session)
        except (BulkWriteError, DuplicateKeyError) as exc:
            if self._session is None:
                await StudentHistory.find(In(StudentHistory.id, [d.id for d in docs])).delete()
            logger.warning("History batch of %d record(s) rejected: %s", len(docs), exc)
            raise ArchiveError("Student history already recorded for this academic year") from exc
        return [_history_out(d) for d in docs]

    async def list_history(self, year_id: str | None = None, student_id: str | None = None) -> list[StudentHistoryOut]:
        query = {}
        if year_id:
            query["academic_year_id"] = year_id
        if student_id:
            query["student_id"] = student_id
        docs = await StudentHistory.find(query, session=self._session).sort("created_at").to_list()
        return [_history_out(d) for d in docs]

    # --- Reports ---

    async def list_exam_marks(self, year_id: str) -> list[MarkEntry]:
        exams = await Exam.find(Exam.academic_year_id == year_id, session=self._session).to_list()
        if not exams:
            return []
        exams_by_id = {str(e.id): e for e in exams}
        marks = await Marks.find(In(Marks.exam_id, list(exams_by_id)), session=self._session).to_list()
        users = await self.get_users([m.student_id for m in marks])
        entries = []
        for m in marks:
            exam = exams_by_id[m.exam_id]
            student = users.get(m.student_id)
            entries.append(
                MarkEntry(
                    student_id=m.student_id,
                    student_name=student.name if student else None,
                    exam_id=m.exam_id,
                    exam_name=exam.name,
                    subject=exam.subject,
                    total_marks=exam.total_marks,
                    marks_obtained=m.marks_obtained,
                    grade=m.grade,
                    percentage=m.percentage,
                )
            )
        return entries

    async def list_staff_leaves(self, start: datetime, end: datetime) -> list[LeaveEntry]:
        leaves = await LeaveRequest.find(
            {
                "applicant_role": {"$in": [r.value for r in STAFF_ROLES]},
                "start_date": {"$gte": start, "$lte": end},
            },
            session=self._session,
        ).sort("start_date").to_list()
        users = await self.get_users([lv.applicant_id for lv in leaves])
        return [
            LeaveEntry(
                id=str(lv.id),
                applicant_id=lv.applicant_id,
                applicant_name=users[lv.applicant_id].name if lv.applicant_id in users else None,
                applicant_role=lv.applicant_role,
                start_date=lv.start_date,
                end_date=lv.end_date,
                reason=lv.reason,
                status=lv.status,
            )
            for lv in leaves
        ]

    async def staff_attendance_summary(self, start: datetime, end: datetime) -> list[AttendanceSummary]:
        pipeline = [
            {
                "$match": {
                    "role": {"$in": [r.value for r in STAFF_ROLES]},
                    "date": {"$gte": start, "$lte": end},
                }
            },
            {"$group": {"_id": {"user_id": "$user_id", "status": "$status"}, "count": {"$sum": 1}}},
            {"$sort": {"_id.user_id": 1, "_id.status": 1}},
        ]
        rows = await Attendance.aggregate(pipeline, session=self._session).to_list()
        users = await self.get_users([row["_id"]["user_id"] for row in rows])
        return [
            AttendanceSummary(
                user_id=row["_id"]["user_id"],
                user=users[row["_id"]["user_id"]].name if row["_id"]["user_id"] in users else None,
                status=row["_id"]["status"],
                count=row["count"],
            )
            for row in rows
        ]
