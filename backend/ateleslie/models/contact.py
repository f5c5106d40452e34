"""
Contact Model
Messages sent through the public contact form.
"""

import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey

from ateleslie.database import Base


class ContactType(str, enum.Enum):
    INFORMATION = "information"
    CALLBACK = "callback"
    REVIEW = "review"


class ContactStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(20), default=ContactType.INFORMATION.value, nullable=False)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone_number = Column(String(16), nullable=True)
    message = Column(Text, nullable=False)
    rating = Column(Integer, nullable=True)  # Required for reviews, 1-5

    status = Column(String(20), default=ContactStatus.PENDING.value, nullable=False, index=True)
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Contact(id={self.id}, type='{self.type}', status='{self.status}')>"
