"""
User Schemas
Pydantic models for authentication and user management.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import Field, field_validator, model_validator

from ateleslie.models.user import UserRole
from ateleslie.schemas.common import CamelModel
from ateleslie.utils import validators


class UserCreate(CamelModel):
    username: str
    email: str
    password: str
    confirm_password: str
    interests: List[str] = Field(default_factory=list)
    newsletter_subscribed: bool = False
    phone_number: Optional[str] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        validators.check(validators.validate_username(v))
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        validators.check(validators.validate_email(v))
        return v

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> Optional[str]:
        v = v.strip() if v else None
        validators.check(validators.validate_phone_number(v))
        return v

    @field_validator("interests")
    @classmethod
    def validate_interests(cls, v: List[str]) -> List[str]:
        validators.check(validators.validate_interests(v))
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def validate_passwords(self):
        # Mismatch is reported before strength so it wins regardless of the password
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        validators.check(validators.validate_password_strength(self.password))
        return self


class AdminSignUp(UserCreate):
    pass


class UserLogin(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ProfileUpdate(CamelModel):
    username: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    interests: Optional[List[str]] = None
    newsletter_subscribed: Optional[bool] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        validators.check(validators.validate_username(v))
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        validators.check(validators.validate_email(v))
        return v

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> Optional[str]:
        validators.check(validators.validate_phone_number(v))
        return v

    @field_validator("interests")
    @classmethod
    def validate_interests(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        validators.check(validators.validate_interests(v))
        return list(dict.fromkeys(v))


class AdminUserUpdate(ProfileUpdate):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class ForgotPasswordRequest(CamelModel):
    email: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ResetPasswordRequest(CamelModel):
    new_password: str
    confirm_new_password: str


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)
    confirm_new_password: str


class UserResponse(CamelModel):
    id: int
    username: str
    email: str
    role: str
    permissions: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    newsletter_subscribed: bool
    phone_number: Optional[str] = None
    last_login: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class AuthData(CamelModel):
    token: str
    user: UserResponse


class SetupStatus(CamelModel):
    setup_complete: bool
