from datetime import datetime
from typing import Dict, List, Optional
from pydantic import Field, field_validator, model_validator

from ateleslie.schemas.common import CamelModel, to_naive_utc
from ateleslie.utils import validators


class ImageVariant(CamelModel):
    path: str
    filename: str
    width: int
    height: int


class ImageInfo(CamelModel):
    original: ImageVariant
    thumbnails: Dict[str, ImageVariant] = Field(default_factory=dict)


class EventCreate(CamelModel):
    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = None
    start_date: datetime
    end_date: datetime

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: Optional[str]) -> Optional[str]:
        if v:
            validators.check(validators.validate_interests([v]))
        return v or None

    @model_validator(mode="after")
    def validate_dates(self):
        validators.check(validators.validate_event_dates(self.start_date, self.end_date))
        return self


class EventUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: Optional[str]) -> Optional[str]:
        if v:
            validators.check(validators.validate_interests([v]))
        return v


class EventResponse(CamelModel):
    id: int
    title: str
    description: str
    location: str
    category: Optional[str] = None
    start_date: datetime
    end_date: datetime
    images: List[ImageInfo] = Field(default_factory=list)
    created_by_id: int
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
