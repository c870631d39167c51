"""School classes (permanent per branch)."""
from fastapi import APIRouter

from app.api.deps import AdminOnly, CurrentUser, Store
from app.models.school_class import Branch, SchoolClassCreate, SchoolClassOut

router = APIRouter()


@router.get("/", response_model=list[SchoolClassOut])
async def list_classes(store: Store, user: CurrentUser, branch: Branch | None = None):
    return await store.list_classes(branch)


@router.post("/", response_model=SchoolClassOut, status_code=201)
async def create_class(data: SchoolClassCreate, store: Store, admin: AdminOnly):
    return await store.insert_class(data)
