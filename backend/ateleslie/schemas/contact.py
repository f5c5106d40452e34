from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator, model_validator

from ateleslie.models.contact import ContactStatus, ContactType
from ateleslie.schemas.common import CamelModel
from ateleslie.utils import validators


class ContactCreate(CamelModel):
    type: ContactType = ContactType.INFORMATION
    name: str = Field(..., min_length=1, max_length=100)
    email: str
    phone_number: Optional[str] = None
    message: str
    rating: Optional[int] = None

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

    @model_validator(mode="after")
    def validate_contact(self):
        validators.check(validators.validate_contact(self.type.value, self.rating, self.message))
        return self


class ContactStatusUpdate(CamelModel):
    status: ContactStatus
    assigned_to: Optional[int] = None


class ContactResponse(CamelModel):
    id: int
    type: str
    name: str
    email: str
    phone_number: Optional[str] = None
    message: str
    rating: Optional[int] = None
    status: str
    assigned_to_id: Optional[int] = None
    user_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
