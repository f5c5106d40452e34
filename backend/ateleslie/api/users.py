"""
Users Router
Endpoints for user management (admin only).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ateleslie.api.auth import apply_profile_update
from ateleslie.api.dependencies import require_permission
from ateleslie.database import get_db
from ateleslie.exceptions import BadRequestError, NotFoundError
from ateleslie.models.user import User, UserRole
from ateleslie.permissions import Action, PermissionTable, Resource, get_permission_table
from ateleslie.schemas.common import ApiResponse, PaginatedData
from ateleslie.schemas.user import AdminUserUpdate, ResetPasswordRequest, UserResponse
from ateleslie.services import auth_service
from ateleslie.utils import validators
from ateleslie.utils.pagination import paginate

router = APIRouter()

require_user_manage = require_permission(Resource.USER, Action.MANAGE)


async def _get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


async def _admin_count(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(User.id)).where(User.role == UserRole.ADMIN.value, User.is_active == True)
    )
    return result.scalar() or 0


@router.get("", response_model=ApiResponse[PaginatedData[UserResponse]])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_user_manage),
):
    """
    List users (Admin only).
    """
    stmt = select(User).order_by(User.id)
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(or_(func.lower(User.username).like(pattern), User.email.like(pattern)))
    if role:
        stmt = stmt.where(User.role == role.value)

    users, pagination = await paginate(db, stmt, page, limit)
    return ApiResponse(
        message="Users retrieved",
        data=PaginatedData(items=[UserResponse.model_validate(u) for u in users], pagination=pagination),
    )


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_user_manage),
):
    user = await _get_user(db, user_id)
    return ApiResponse(message="User retrieved", data=UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    user_id: int,
    payload: AdminUserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_user_manage),
    permission_table: PermissionTable = Depends(get_permission_table),
):
    """
    Update a user (Admin only).
    Can change profile fields, the role and the active flag; the last active
    administrator cannot be demoted or deactivated.
    """
    user = await _get_user(db, user_id)
    changes = payload.model_dump(exclude_unset=True)
    role = changes.pop("role", None)
    is_active = changes.pop("is_active", None)

    losing_admin = user.is_admin and user.is_active and (
        (role is not None and role != UserRole.ADMIN) or is_active is False
    )
    if losing_admin and await _admin_count(db) <= 1:
        raise BadRequestError("Cannot demote or deactivate the last administrator")

    await apply_profile_update(db, user, changes)

    if role is not None:
        auth_service.assign_role(user, role, permission_table)
    if is_active is not None:
        user.is_active = is_active

    await db.commit()
    await db.refresh(user)
    return ApiResponse(message="User updated successfully", data=UserResponse.model_validate(user))


@router.put("/{user_id}/password", response_model=ApiResponse[None])
async def set_user_password(
    user_id: int,
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_user_manage),
):
    """Set another user's password (Admin only)."""
    user = await _get_user(db, user_id)

    if payload.new_password != payload.confirm_new_password:
        raise BadRequestError("Passwords do not match")
    validators.ensure_valid(validators.validate_password_strength(payload.new_password))

    user.hashed_password = auth_service.get_password_hash(payload.new_password)
    auth_service.clear_password_reset(user)
    await db.commit()
    return ApiResponse(message="Password updated successfully")
