"""Academic years: creation, activation, year transition and year reports."""
from fastapi import APIRouter

from app.api.deps import AdminOnly, CurrentUser, Store, SuperAdminOnly
from app.models.academic_year import (
    AcademicYearActivate,
    AcademicYearCreate,
    AcademicYearOut,
    YearIncrementRequest,
)
from app.services import academic_year as years
from app.services.reports import YearReport, build_year_report
from app.services.transition import transition_year

router = APIRouter()


@router.get("/", response_model=list[AcademicYearOut])
async def list_academic_years(store: Store, user: CurrentUser):
    """All academic years, newest first."""
    return await years.list_years(store)


@router.post("/", response_model=AcademicYearOut)
async def create_academic_year(data: AcademicYearCreate, store: Store, admin: AdminOnly):
    return await years.create_year(store, data)


@router.get("/current", response_model=AcademicYearOut)
async def get_current_academic_year(store: Store, user: CurrentUser):
    return await years.get_active_year(store)


@router.post("/upgrade")
async def upgrade_academic_year(data: AcademicYearActivate, store: Store, admin: SuperAdminOnly):
    """Set the active academic year directly, without archiving or promoting students."""
    year = await years.activate_year(store, data.id)
    return {"msg": f"Academic year upgraded to {year.name}", "activeYear": year}


@router.post("/increment")
async def increment_academic_year(data: YearIncrementRequest, store: Store, admin: SuperAdminOnly):
    """Close the active year: archive student history, promote students, activate the next year."""
    summary = await transition_year(store, data.next_year_id, acting_user=admin)
    return {"msg": summary.message, **summary.model_dump(by_alias=True, mode="json", exclude={"message"})}


@router.get("/{academic_year_id}/reports", response_model=YearReport)
async def get_academic_year_reports(academic_year_id: str, store: Store, admin: SuperAdminOnly):
    return await build_year_report(store, academic_year_id)
