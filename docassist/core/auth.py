from dataclasses import dataclass
from typing import FrozenSet, Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docassist.core.errors import AuthError
from docassist.core.rbac import AppRole, DocumentCategory, allowed_categories, parse_role
from docassist.core.security import is_end_user_payload, verify_jwt_token
from docassist.db.models.user_role import UserRole
from docassist.db.sessions import get_db
from docassist.utils.logger import get_logger, log_database_operation

logger = get_logger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: Optional[AppRole]
    categories: FrozenSet[DocumentCategory]

    @property
    def is_admin(self) -> bool:
        return self.role == AppRole.admin


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthError("Authorization header required")
    if not authorization.startswith("Bearer "):
        raise AuthError("Invalid Authorization header format")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthError("Invalid Authorization header format")
    return token


async def resolve_role(db: AsyncSession, user_id: str) -> Optional[AppRole]:
    log_database_operation(logger, "SELECT", "user_roles", user_id)
    result = await db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
    return parse_role(result.scalar_one_or_none())


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """
    Resolve the bearer token to an end user and their permitted categories.

    Anonymous and service-level tokens are rejected outright; users without a
    role assignment get the most restrictive category set.
    """
    payload = verify_jwt_token(_bearer_token(authorization))
    if payload is None:
        raise AuthError("Invalid or expired token")
    if not is_end_user_payload(payload):
        logger.warning(f"Rejected non end-user token (role claim: {payload.get('role')})")
        raise AuthError("A signed-in user is required")

    user_id = payload["sub"]
    role = await resolve_role(db, user_id)
    return CurrentUser(id=user_id, role=role, categories=allowed_categories(role))
