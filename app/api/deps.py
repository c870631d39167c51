"""Shared dependencies: JWT auth, role checks and the data store."""
from datetime import datetime, timedelta
from typing import Annotated, Optional

import bcrypt
from beanie import PydanticObjectId
from bson.errors import InvalidId
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from app.config import settings
from app.errors import AuthorizationError
from app.models.user import User, UserInDB, UserRole
from app.services.store import BeanieSchoolStore, SchoolStore

security = HTTPBearer(auto_error=False)


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def create_access_token(subject: str, role: str) -> str:
    expire = datetime.utcnow() + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode = {"sub": subject, "role": role, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(subject: str) -> str:
    expire = datetime.utcnow() + timedelta(days=settings.jwt_refresh_token_expire_days)
    to_encode = {"sub": subject, "exp": expire, "type": "refresh"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, token_type: str) -> str:
    """Return the user id carried by a valid token of the given type."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if payload.get("type") != token_type:
        raise HTTPException(status_code=401, detail="Invalid token type")
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user_id


async def load_active_user(user_id: str) -> User:
    try:
        user = await User.get(PydanticObjectId(user_id))
    except InvalidId:
        user = None
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> UserInDB:
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = await load_active_user(decode_token(credentials.credentials, "access"))
    return UserInDB(
        id=str(user.id),
        name=user.name,
        phone=user.phone,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
    )


def require_roles(*allowed: UserRole):
    allowed_values = [role.value for role in allowed]

    async def checker(user: Annotated[UserInDB, Depends(get_current_user)]):
        if user.role not in allowed_values:
            raise AuthorizationError("Forbidden: Insufficient privileges")
        return user

    return checker


def get_store() -> SchoolStore:
    return BeanieSchoolStore()


# Type aliases for route injection
Store = Annotated[SchoolStore, Depends(get_store)]
CurrentUser = Annotated[UserInDB, Depends(get_current_user)]
AdminOnly = Annotated[UserInDB, Depends(require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN))]
SuperAdminOnly = Annotated[UserInDB, Depends(require_roles(UserRole.SUPER_ADMIN))]
StaffOrAdmin = Annotated[
    UserInDB, Depends(require_roles(UserRole.TEACHER, UserRole.ADMIN, UserRole.SUPER_ADMIN))
]
