"""
API Dependencies
Reusable FastAPI dependencies for endpoint protection.
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ateleslie.config import settings
from ateleslie.database import get_db
from ateleslie.exceptions import ForbiddenError, UnauthorizedError
from ateleslie.models.user import User
from ateleslie.permissions import Action, PermissionTable, Resource, get_permission_table
from ateleslie.services import auth_service


def _extract_token(request: Request) -> Optional[str]:
    """Bearer header first, then the session cookie."""
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(settings.cookie_name) or None


async def get_current_user_optional(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """
    Extract user from a Bearer header or the session cookie.
    Returns None if token is missing or invalid, or the user is gone or inactive.
    """
    token = _extract_token(request)
    if not token:
        return None

    payload = auth_service.decode_access_token(token)
    if not payload:
        return None

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None

    result = await db.execute(select(User).where(User.id == user_id, User.is_active == True))
    return result.scalar_one_or_none()


async def get_current_user(
    user: Optional[User] = Depends(get_current_user_optional)
) -> User:
    """
    Dependency that enforces authentication.
    Always requires a valid user - use get_current_user_optional for public endpoints.
    """
    if not user:
        raise UnauthorizedError("Not authenticated")
    return user


def require_permission(resource: Resource, action: Action):
    """
    Dependency factory enforcing that the current user's role grants ``resource:action``.
    """
    async def permission_gate(
        user: User = Depends(get_current_user),
        permission_table: PermissionTable = Depends(get_permission_table),
    ) -> User:
        if not permission_table.allows(user.role, resource, action):
            raise ForbiddenError(
                f"Permission denied: {resource.value}:{action.value} required"
            )
        return user

    return permission_gate
