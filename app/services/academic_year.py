"""Academic year lifecycle: creation and the single-active-year rule."""
import asyncio
import logging

from app.errors import DuplicateNameError, NotFoundError
from app.models.academic_year import AcademicYearCreate, AcademicYearOut
from app.services.store import SchoolStore

logger = logging.getLogger(__name__)

# Activations in this process run one at a time so "deactivate others, activate one"
# never interleaves. Across processes the last activation to commit wins.
_activation_lock = asyncio.Lock()


async def activate_year(store: SchoolStore, year_id: str) -> AcademicYearOut:
    """
    Make `year_id` the only active academic year.

    Every other year is deactivated in the same write unit. This is the only
    place `is_active` changes.
    """
    async with _activation_lock:
        year = await store.activate_year(year_id)
    logger.info("Academic year %s (%s) is now active", year.name, year.id)
    return year


async def create_year(store: SchoolStore, data: AcademicYearCreate) -> AcademicYearOut:
    """Create a year; names are unique (exact match). Activates it after insert if requested."""
    if await store.get_year_by_name(data.name):
        raise DuplicateNameError("Academic year already exists")
    year = await store.insert_year(data)
    logger.info("Created academic year %s", year.name)
    if data.is_active:
        year = await activate_year(store, year.id)
    return year


async def list_years(store: SchoolStore) -> list[AcademicYearOut]:
    """All years, most recent start date first."""
    return await store.list_years()


async def get_active_year(store: SchoolStore) -> AcademicYearOut:
    year = await store.get_active_year()
    if not year:
        raise NotFoundError("No active academic year set")
    return year
