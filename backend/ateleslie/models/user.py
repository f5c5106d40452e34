"""
User Model
Stores credentials, role, profile and password-reset state.
"""

import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON

from ateleslie.database import Base


class UserRole(str, enum.Enum):
    """Roles a stored account can hold."""
    USER = "user"
    ADMIN = "admin"


class User(Base):
    """
    User account. Never hard-deleted; deactivate with is_active.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(1024), nullable=False)

    role = Column(String(20), default=UserRole.USER.value, nullable=False)
    permissions = Column(JSON, default=list, nullable=False)  # Derived from role

    interests = Column(JSON, default=list, nullable=False)
    newsletter_subscribed = Column(Boolean, default=False, nullable=False)
    phone_number = Column(String(16), nullable=True)

    # SHA-256 of the emailed token; the raw token is never stored
    reset_password_token = Column(String(64), nullable=True, index=True)
    reset_password_expires = Column(DateTime, nullable=True)

    last_login = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"
