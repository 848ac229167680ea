# alumni_hub/core/security.py
"""Bearer token authentication and the peer eligibility rule."""
from typing import Optional
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .database import get_db
from ..models.user import User, SchoolAdmin, ROLE_ALUMNI, ROLE_SCHOOL_ADMIN, ADMIN_ROLES

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class Principal(BaseModel):
    """The authenticated caller of a request."""
    user_id: int
    role: str
    first_name: str
    last_name: str
    email: str
    school_id: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def is_admin_role(role: Optional[str]) -> bool:
    return role in ADMIN_ROLES


def is_peer_eligible(principal) -> bool:
    """Only alumni take part in connections, direct messages and group chats.

    Accepts a Principal or a User row.
    """
    return getattr(principal, "role", None) == ROLE_ALUMNI


def create_access_token(subject_id: int, token_type: str = "user") -> str:
    """Sign a token carrying the account id and type (user or school_admin)."""
    return jwt.encode(
        {"id": subject_id, "type": token_type},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authorized to access this route")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        logger.info(f"Rejected token: {e}")
        raise _unauthorized("Not authorized, token failed")

    account_id = payload.get("id")
    if account_id is None:
        raise _unauthorized("Not authorized, token failed")

    if payload.get("type") == ROLE_SCHOOL_ADMIN:
        result = await db.execute(select(SchoolAdmin).where(SchoolAdmin.admin_id == account_id))
        admin = result.scalar_one_or_none()
        if admin is None:
            raise _unauthorized("School admin not found")
        if not admin.is_active:
            raise _unauthorized("Account has been deactivated")
        return Principal(
            user_id=admin.admin_id,
            role=ROLE_SCHOOL_ADMIN,
            first_name=admin.first_name,
            last_name=admin.last_name,
            email=admin.email,
            school_id=admin.school_id,
        )

    result = await db.execute(select(User).where(User.user_id == account_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("Account has been deactivated")
    return Principal(
        user_id=user.user_id,
        role=user.role,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
    )
