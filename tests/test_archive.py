"""
Tests for the year-end StudentHistory archive.
"""

import pytest

from app.errors import ArchiveError
from app.models.student_history import HistoryResult
from app.services.archive import archive_year
from tests.conftest import run


def test_archive_writes_one_row_per_student_with_class(store):
    year = store.add_year("2024-2025", 2024, active=True)
    class_5 = store.add_class("Class 5")
    s1 = store.add_student("Asha", class_5.id, year.id)
    s2 = store.add_student("Ravi", class_5.id, year.id)

    history = run(archive_year(store, year.id))

    assert {h.student_id for h in history} == {s1.id, s2.id}
    for row in history:
        assert row.class_id == class_5.id
        assert row.academic_year_id == year.id
        assert row.result == HistoryResult.PROMOTED
        assert row.final_grade == ""


def test_archive_skips_unassigned_students(store):
    year = store.add_year("2024-2025", 2024, active=True)
    class_5 = store.add_class("Class 5")
    store.add_student("Asha", class_5.id, year.id)
    store.add_student("Unassigned", None, year.id)

    history = run(archive_year(store, year.id))

    assert len(history) == 1
    assert len(store.history) == 1


def test_archive_ignores_students_of_other_years(store):
    year = store.add_year("2024-2025", 2024, active=True)
    other = store.add_year("2023-2024", 2023)
    class_5 = store.add_class("Class 5")
    store.add_student("Old", class_5.id, other.id)

    assert run(archive_year(store, year.id)) == []
    assert store.history == []


def test_archive_twice_fails_without_duplicates(store):
    year = store.add_year("2024-2025", 2024, active=True)
    class_5 = store.add_class("Class 5")
    store.add_student("Asha", class_5.id, year.id)
    run(archive_year(store, year.id))

    with pytest.raises(ArchiveError):
        run(archive_year(store, year.id))
    assert len(store.history) == 1


def test_archive_conflict_is_all_or_nothing(store):
    year = store.add_year("2024-2025", 2024, active=True)
    class_5 = store.add_class("Class 5")
    first = store.add_student("Asha", class_5.id, year.id)
    run(archive_year(store, year.id))
    store.add_student("Late Joiner", class_5.id, year.id)

    with pytest.raises(ArchiveError):
        run(archive_year(store, year.id))
    assert [h.student_id for h in store.history] == [first.id]


def test_archive_with_no_students_writes_nothing(store):
    year = store.add_year("2024-2025", 2024, active=True)

    assert run(archive_year(store, year.id)) == []
    assert store.writes == []
