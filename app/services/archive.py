"""Year-end archive of each student's class into StudentHistory."""
from __future__ import annotations

import logging

from app.models.student_history import HistoryResult, StudentHistoryCreate, StudentHistoryOut
from app.services.store import EnrolledStudent, SchoolStore

logger = logging.getLogger(__name__)


def archivable_students(students: list[EnrolledStudent]) -> list[EnrolledStudent]:
    """Students with a class; unassigned students have no history to record."""
    return [s for s in students if s.current_class is not None]


async def archive_year(
    store: SchoolStore,
    year_id: str,
    students: list[EnrolledStudent] | None = None,
) -> list[StudentHistoryOut]:
    """
    Write one StudentHistory row per student enrolled in `year_id` who has a class.

    `students` may be passed when the caller already loaded the enrollment for the
    year. The rows go in one batch; if any (student, year) row already exists the
    store raises ArchiveError and nothing is written.
    """
    if students is None:
        students = await store.list_enrolled_students(year_id)
    records = [
        StudentHistoryCreate(
            student_id=s.student.id,
            class_id=s.current_class.id,
            academic_year_id=year_id,
            result=HistoryResult.PROMOTED,
            final_grade="",
        )
        for s in archivable_students(students)
    ]
    skipped = len(students) - len(records)
    if skipped:
        logger.info("Skipping %d unassigned student(s) when archiving year %s", skipped, year_id)
    if not records:
        return []
    history = await store.insert_history(records)
    logger.info("Archived %d student history record(s) for year %s", len(history), year_id)
    return history
