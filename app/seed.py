"""Seed the super admin user if not present."""
import logging

from app.api.deps import get_password_hash
from app.config import settings
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


async def seed_super_admin():
    existing = await User.find_one(User.role == UserRole.SUPER_ADMIN)
    if existing:
        return
    await User(
        name=settings.super_admin_name,
        phone=settings.super_admin_phone,
        hashed_password=get_password_hash(settings.super_admin_password),
        role=UserRole.SUPER_ADMIN,
    ).insert()
    logger.info("Seeded super admin with phone %s", settings.super_admin_phone)
