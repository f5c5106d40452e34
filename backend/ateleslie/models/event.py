"""
Event Model
Events published by administrators, with processed image descriptors.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, ForeignKey, Index

from ateleslie.database import Base


class Event(Base):
    """
    Event with its images.

    Each entry of ``images`` has the shape::

        {"original": {path, filename, width, height},
         "thumbnails": {"small": {...}, "medium": {...}, "large": {...}}}

    Thumbnail entries may point at the original when the image is narrower
    than the breakpoint.
    """
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(255), nullable=False)
    category = Column(String(50), nullable=True, index=True)

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)

    images = Column(JSON, default=list, nullable=False)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_events_active_start', 'is_active', 'start_date'),
    )

    def __repr__(self):
        return f"<Event(id={self.id}, title='{self.title}')>"
