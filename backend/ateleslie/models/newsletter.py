"""
Newsletter Model
One table for two kinds of rows, told apart by ``type``:
subscriber rows (email, preferences) and newsletter content rows (title, content, status).
"""

import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, Float, JSON, Index

from ateleslie.database import Base


class NewsletterType(str, enum.Enum):
    SUBSCRIBER = "subscriber"
    NEWSLETTER = "newsletter"


class NewsletterStatus(str, enum.Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    SENT = "sent"


DEFAULT_PREFERENCES = {"events": True, "news": True, "promotions": False}


class Newsletter(Base):
    __tablename__ = "newsletters"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(20), default=NewsletterType.SUBSCRIBER.value, nullable=False)

    # Subscriber fields
    email = Column(String(255), unique=True, nullable=True)
    first_name = Column(String(50), nullable=True)
    interests = Column(JSON, default=list, nullable=False)
    preferences = Column(JSON, default=lambda: dict(DEFAULT_PREFERENCES), nullable=False)
    source = Column(String(20), nullable=True)  # website, event, social_media
    subscribed_at = Column(DateTime, nullable=True)
    unsubscribed_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Newsletter content fields
    title = Column(String(100), nullable=True)
    content = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    status = Column(String(20), nullable=True)
    scheduled_date = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    recipient_count = Column(Integer, default=0, nullable=False)

    # Statistics (percentages)
    open_rate = Column(Float, default=0, nullable=False)
    click_rate = Column(Float, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_newsletters_type_active', 'type', 'is_active'),
        Index('ix_newsletters_status_scheduled', 'status', 'scheduled_date'),
    )

    @property
    def is_scheduled(self) -> bool:
        return (
            self.status == NewsletterStatus.SCHEDULED
            and self.scheduled_date is not None
            and self.scheduled_date > datetime.utcnow()
        )

    def __repr__(self):
        return f"<Newsletter(id={self.id}, type='{self.type}')>"
