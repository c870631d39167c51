"""MongoDB connection and Beanie document registration."""
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from app.config import settings
from app.models import (
    AcademicYear,
    Attendance,
    Exam,
    LeaveRequest,
    Marks,
    SchoolClass,
    StudentHistory,
    User,
)


DOCUMENT_MODELS = [
    User,
    AcademicYear,
    SchoolClass,
    StudentHistory,
    Exam,
    Marks,
    LeaveRequest,
    Attendance,
]

_client = None


async def db_startup():
    """Connect to MongoDB and initialize Beanie ODM."""
    global _client
    _client = AsyncIOMotorClient(settings.mongodb_url)
    await init_beanie(database=_client[settings.mongodb_db_name], document_models=DOCUMENT_MODELS)


async def db_shutdown():
    """Close MongoDB connection."""
    global _client
    if _client:
        _client.close()
        _client = None


def get_client() -> AsyncIOMotorClient:
    """Return the connected Motor client (needed to open transaction sessions)."""
    if _client is None:
        raise RuntimeError("MongoDB client is not initialized; call db_startup() first")
    return _client
