"""
Authentication Router
Registration, login/logout, password recovery and the signed-in user's profile.
"""

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ateleslie.api.dependencies import get_current_user
from ateleslie.api.rate_limit import limiter
from ateleslie.config import settings
from ateleslie.database import get_db
from ateleslie.exceptions import (
    BadRequestError, ConflictError, ForbiddenError, NotFoundError, UnauthorizedError,
)
from ateleslie.models.user import User, UserRole
from ateleslie.permissions import PermissionTable, get_permission_table
from ateleslie.schemas.common import ApiResponse
from ateleslie.schemas.user import (
    AdminSignUp, AuthData, ChangePasswordRequest, ForgotPasswordRequest, ProfileUpdate,
    ResetPasswordRequest, SetupStatus, UserCreate, UserLogin, UserResponse,
)
from ateleslie.services import auth_service, email_service, newsletter_service
from ateleslie.utils import validators

router = APIRouter()


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        httponly=True,
        max_age=settings.access_token_expire_minutes * 60,
        samesite=settings.cookie_samesite,
        secure=settings.cookie_secure,
    )


def _auth_data(user: User, response: Response) -> AuthData:
    token = auth_service.create_session_token(user)
    _set_session_cookie(response, token)
    return AuthData(token=token, user=UserResponse.model_validate(user))


async def ensure_unique_identity(db: AsyncSession, username=None, email=None, exclude_id=None) -> None:
    """Raise ConflictError when the username or email belongs to another account."""
    clauses = []
    if username:
        clauses.append(User.username == username)
    if email:
        clauses.append(User.email == email)
    if not clauses:
        return

    stmt = select(User).where(or_(*clauses))
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    existing = (await db.execute(stmt)).scalars().first()
    if existing is None:
        return
    if email and existing.email == email:
        raise ConflictError("Email already registered")
    raise ConflictError("Username already taken")


async def _create_user(
    db: AsyncSession, data: UserCreate, role: UserRole, permission_table: PermissionTable
) -> User:
    await ensure_unique_identity(db, username=data.username, email=data.email)

    user = User(
        username=data.username,
        email=data.email,
        hashed_password=auth_service.get_password_hash(data.password),
        interests=data.interests,
        newsletter_subscribed=data.newsletter_subscribed,
        phone_number=data.phone_number,
        is_active=True,
    )
    auth_service.assign_role(user, role, permission_table)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        raise ConflictError("Username or email already registered")

    if user.newsletter_subscribed:
        await newsletter_service.sync_user_subscription(db, user)

    await db.commit()
    await db.refresh(user)
    return user


@router.post("/register", response_model=ApiResponse[AuthData], status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_register)
async def register(
    request: Request,
    payload: UserCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    permission_table: PermissionTable = Depends(get_permission_table),
):
    """Create a regular account and sign it in."""
    user = await _create_user(db, payload, UserRole.USER, permission_table)
    return ApiResponse(message="User registered successfully", data=_auth_data(user, response))


@router.post("/login", response_model=ApiResponse[AuthData])
@limiter.limit(settings.rate_limit_login)
async def login(
    request: Request,
    payload: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate user and set the HTTP-only session cookie.
    Unknown email and wrong password share one message.
    """
    result = await db.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()

    if not user or not auth_service.verify_password(payload.password, user.hashed_password):
        raise UnauthorizedError("Invalid email or password")

    if not user.is_active:
        raise ForbiddenError("User account is deactivated")

    user.last_login = datetime.utcnow()
    await db.commit()
    await db.refresh(user)

    return ApiResponse(message="Login successful", data=_auth_data(user, response))


@router.post("/logout", response_model=ApiResponse[None])
async def logout(response: Response):
    """
    Clear authentication cookie.
    """
    response.delete_cookie(
        key=settings.cookie_name,
        samesite=settings.cookie_samesite,
        secure=settings.cookie_secure,
    )
    return ApiResponse(message="Logged out successfully")


@router.post("/password/forgot", response_model=ApiResponse[None])
@limiter.limit(settings.rate_limit_password_reset)
async def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("No account found with that email")

    raw_token, _ = auth_service.create_password_reset_token(user)
    await db.commit()

    background_tasks.add_task(email_service.send_password_reset, user.email, raw_token)
    return ApiResponse(message="Password reset email sent")


@router.put("/password/reset/{token}", response_model=ApiResponse[None])
async def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    """Consume a reset token and set a new password."""
    if payload.new_password != payload.confirm_new_password:
        raise BadRequestError("Passwords do not match")

    result = await db.execute(
        select(User).where(
            User.reset_password_token == auth_service.hash_reset_token(token),
            User.reset_password_expires > datetime.utcnow(),
        )
    )
    user = result.scalar_one_or_none()
    if not user:
        raise BadRequestError("Invalid or expired reset token")

    validators.ensure_valid(validators.validate_password_strength(payload.new_password))

    user.hashed_password = auth_service.get_password_hash(payload.new_password)
    auth_service.clear_password_reset(user)
    await db.commit()
    return ApiResponse(message="Password reset successful")


@router.put("/password/change", response_model=ApiResponse[None])
async def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not auth_service.verify_password(payload.current_password, user.hashed_password):
        raise UnauthorizedError("Current password is incorrect")

    if payload.new_password != payload.confirm_new_password:
        raise BadRequestError("Passwords do not match")

    validators.ensure_valid(validators.validate_password_strength(payload.new_password))

    user.hashed_password = auth_service.get_password_hash(payload.new_password)
    await db.commit()
    return ApiResponse(message="Password changed successfully")


@router.get("/profile", response_model=ApiResponse[UserResponse])
async def get_profile(user: User = Depends(get_current_user)):
    return ApiResponse(message="Profile retrieved", data=UserResponse.model_validate(user))


async def apply_profile_update(db: AsyncSession, user: User, changes: dict) -> None:
    """Apply validated profile fields, keeping identity unique and the subscription in sync."""
    await ensure_unique_identity(
        db, username=changes.get("username"), email=changes.get("email"), exclude_id=user.id
    )

    old_email = user.email
    subscription_changed = (
        "newsletter_subscribed" in changes
        and changes["newsletter_subscribed"] != user.newsletter_subscribed
    )
    for field, value in changes.items():
        if field in ("username", "email", "interests", "newsletter_subscribed") and value is None:
            continue
        setattr(user, field, value)

    try:
        await db.flush()
    except IntegrityError:
        raise ConflictError("Username or email already registered")

    if user.email != old_email:
        await newsletter_service.move_subscription(db, old_email, user.email)
    if subscription_changed:
        await newsletter_service.sync_user_subscription(db, user)


@router.put("/profile", response_model=ApiResponse[UserResponse])
async def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await apply_profile_update(db, user, payload.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(user)
    return ApiResponse(message="Profile updated successfully", data=UserResponse.model_validate(user))


@router.get("/setup-status", response_model=ApiResponse[SetupStatus])
async def get_setup_status(db: AsyncSession = Depends(get_db)):
    """
    Check if at least one admin exists.
    Used by frontend to decide whether to show setup page.
    """
    result = await db.execute(select(User).where(User.role == UserRole.ADMIN.value))
    admin_exists = result.scalars().first() is not None
    return ApiResponse(data=SetupStatus(setup_complete=admin_exists))


@router.post("/admin-sign-up", response_model=ApiResponse[AuthData], status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_admin_sign_up)
async def admin_sign_up(
    request: Request,
    payload: AdminSignUp,
    response: Response,
    db: AsyncSession = Depends(get_db),
    permission_table: PermissionTable = Depends(get_permission_table),
):
    """
    Initial admin registration.
    Only works while no administrator exists.
    """
    result = await db.execute(select(User).where(User.role == UserRole.ADMIN.value))
    if result.scalars().first():
        raise ForbiddenError("Setup already completed. Please log in or contact an administrator.")

    user = await _create_user(db, payload, UserRole.ADMIN, permission_table)
    return ApiResponse(message="Administrator account created", data=_auth_data(user, response))
