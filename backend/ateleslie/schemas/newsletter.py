from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import Field, field_validator

from ateleslie.schemas.common import CamelModel, to_naive_utc
from ateleslie.utils import validators


class SubscriptionPreferences(CamelModel):
    events: bool = True
    news: bool = True
    promotions: bool = False


class SubscribeRequest(CamelModel):
    email: str
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    interests: List[str] = Field(default_factory=list)
    preferences: SubscriptionPreferences = Field(default_factory=SubscriptionPreferences)
    source: Literal["website", "event", "social_media"] = "website"

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        validators.check(validators.validate_email(v))
        return v

    @field_validator("interests")
    @classmethod
    def validate_interests(cls, v: List[str]) -> List[str]:
        validators.check(validators.validate_interests(v))
        return list(dict.fromkeys(v))


class UnsubscribeRequest(CamelModel):
    email: str
    reason: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class NewsletterCreate(CamelModel):
    title: str = Field(..., min_length=3, max_length=100)
    content: str = Field(..., min_length=10, max_length=5000)
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: Optional[str]) -> Optional[str]:
        if v:
            validators.check(validators.validate_interests([v]))
        return v or None


class ScheduleRequest(CamelModel):
    scheduled_date: datetime

    @field_validator("scheduled_date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class BroadcastRequest(CamelModel):
    subject: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1)
    category: Optional[str] = None

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: Optional[str]) -> Optional[str]:
        if v:
            validators.check(validators.validate_interests([v]))
        return v or None


class SubscriberResponse(CamelModel):
    id: int
    email: str
    first_name: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    preferences: Dict[str, bool] = Field(default_factory=dict)
    source: Optional[str] = None
    subscribed_at: Optional[datetime] = None
    unsubscribed_at: Optional[datetime] = None
    is_active: bool


class NewsletterResponse(CamelModel):
    id: int
    title: str
    content: str
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    status: str
    scheduled_date: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    recipient_count: int = 0
    open_rate: float = 0
    click_rate: float = 0
    created_at: datetime
    updated_at: Optional[datetime] = None


class SubscriptionState(CamelModel):
    email: str
    newsletter_subscribed: bool


class DeliveryResult(CamelModel):
    recipients: int
    delivered: int
