"""
Atelier Leslie Database Models
Exports all models for use throughout the application.
"""

from ateleslie.models.user import User, UserRole
from ateleslie.models.event import Event
from ateleslie.models.contact import Contact, ContactType, ContactStatus
from ateleslie.models.newsletter import Newsletter, NewsletterType, NewsletterStatus

__all__ = [
    "User",
    "UserRole",
    "Event",
    "Contact",
    "ContactType",
    "ContactStatus",
    "Newsletter",
    "NewsletterType",
    "NewsletterStatus",
]
