"""
Authentication Service
Handles password hashing, JWT session tokens, password-reset tokens and role assignment.
"""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

import jwt
from jwt import PyJWTError
from passlib.context import CryptContext

from ateleslie.config import settings
from ateleslie.models.user import User, UserRole
from ateleslie.permissions import PermissionTable

# Password hashing configuration
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check if plain password matches hashed version."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate bcrypt hash of password."""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a new JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def create_session_token(user: User) -> str:
    """Session token embedding the user id and role."""
    return create_access_token(data={"sub": str(user.id), "role": user.role})


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT access token."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        return payload
    except PyJWTError:
        return None


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_password_reset_token(user: User) -> Tuple[str, datetime]:
    """
    Generate a reset token for the user.
    Only the SHA-256 hash is stored; the raw token is returned for delivery.
    """
    raw_token = secrets.token_hex(32)
    expires = datetime.utcnow() + timedelta(minutes=settings.reset_token_expire_minutes)
    user.reset_password_token = hash_reset_token(raw_token)
    user.reset_password_expires = expires
    return raw_token, expires


def clear_password_reset(user: User) -> None:
    user.reset_password_token = None
    user.reset_password_expires = None


def assign_role(user: User, role: UserRole, permission_table: PermissionTable) -> None:
    """Set the user's role and the permission list derived from it."""
    user.role = UserRole(role).value
    user.permissions = permission_table.names_for(user.role)
