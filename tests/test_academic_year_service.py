"""
Tests for academic year creation and the single-active-year rule.
"""

from datetime import datetime

import pytest
from pydantic import ValidationError

from app.errors import DuplicateNameError, NotFoundError
from app.models.academic_year import AcademicYearCreate
from app.services.academic_year import activate_year, create_year, get_active_year, list_years
from tests.conftest import run


def make_create(name="2024-2025", start_year=2024, is_active=False):
    return AcademicYearCreate(
        name=name,
        start_date=datetime(start_year, 6, 1),
        end_date=datetime(start_year + 1, 5, 31),
        is_active=is_active,
    )


# --- schema validation ---

def test_create_schema_rejects_blank_name():
    with pytest.raises(ValidationError):
        make_create(name="   ")


def test_create_schema_rejects_end_before_start():
    with pytest.raises(ValidationError):
        AcademicYearCreate(name="2024-2025", start_date=datetime(2025, 6, 1), end_date=datetime(2024, 6, 1))


def test_create_schema_accepts_camel_case():
    data = AcademicYearCreate.model_validate(
        {"name": "2024-2025", "startDate": "2024-06-01T00:00:00", "endDate": "2025-05-31T00:00:00", "isActive": True}
    )
    assert data.is_active is True


# --- create_year ---

def test_create_year_inactive_by_default(store):
    year = run(create_year(store, make_create()))

    assert year.name == "2024-2025"
    assert year.is_active is False
    assert store.active_years() == []


def test_create_year_duplicate_name(store):
    run(create_year(store, make_create()))

    with pytest.raises(DuplicateNameError):
        run(create_year(store, make_create()))
    assert len(store.years) == 1


def test_create_year_name_match_is_case_sensitive(store):
    run(create_year(store, make_create(name="Year A")))
    run(create_year(store, make_create(name="year a")))

    assert len(store.years) == 2


def test_create_active_year_deactivates_others(store):
    old = store.add_year("2023-2024", 2023, active=True)

    year = run(create_year(store, make_create(is_active=True)))

    assert year.is_active is True
    assert store.years[old.id].is_active is False
    assert [y.id for y in store.active_years()] == [year.id]


# --- activate_year ---

def test_activate_unknown_year(store):
    with pytest.raises(NotFoundError):
        run(activate_year(store, "does-not-exist"))


def test_at_most_one_active_after_every_call(store):
    a = store.add_year("2022-2023", 2022)
    b = store.add_year("2023-2024", 2023)

    for step in [
        lambda: activate_year(store, a.id),
        lambda: create_year(store, make_create("2024-2025", 2024, is_active=True)),
        lambda: activate_year(store, b.id),
        lambda: create_year(store, make_create("2025-2026", 2025)),
        lambda: activate_year(store, b.id),
    ]:
        run(step())
        assert len(store.active_years()) <= 1

    assert store.active_years()[0].id == b.id


# --- queries ---

def test_list_years_newest_first(store):
    store.add_year("2022-2023", 2022)
    store.add_year("2024-2025", 2024)
    store.add_year("2023-2024", 2023)

    names = [y.name for y in run(list_years(store))]
    assert names == ["2024-2025", "2023-2024", "2022-2023"]


def test_get_active_year_none_set(store):
    with pytest.raises(NotFoundError):
        run(get_active_year(store))
