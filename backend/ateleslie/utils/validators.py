"""
Field Validators
Storage-independent validation functions shared by request schemas and handlers.
Each returns a ValidationResult instead of raising, so callers decide how to report it.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional

from ateleslie.exceptions import BadRequestError
from ateleslie.utils.password_policy import validate_password


USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,30}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+[1-9]\d{1,14}$")

INTERESTS = (
    "technology",
    "arts",
    "sports",
    "music",
    "travel",
    "food",
    "science",
    "education",
)

CONTACT_TYPES = ("information", "callback", "review")
CONTACT_MESSAGE_MAX_LENGTH = 1000

# Allowed contact status changes; setting the current status again is a no-op
CONTACT_STATUS_TRANSITIONS = {
    "pending": {"in-progress", "resolved", "closed"},
    "in-progress": {"resolved", "closed"},
    "resolved": {"closed"},
    "closed": set(),
}


class ValidationResult(NamedTuple):
    is_valid: bool
    message: str = ""
    field: Optional[str] = None


VALID = ValidationResult(True)


def validate_username(value: Optional[str]) -> ValidationResult:
    if not value or not USERNAME_RE.match(value):
        return ValidationResult(
            False,
            "Username must be 3-30 characters and contain only letters, numbers and underscores",
            "username",
        )
    return VALID


def validate_email(value: Optional[str]) -> ValidationResult:
    if not value or len(value) > 255 or not EMAIL_RE.match(value):
        return ValidationResult(False, "Please provide a valid email address", "email")
    return VALID


def validate_phone_number(value: Optional[str]) -> ValidationResult:
    """Optional E.164 number, e.g. +33612345678."""
    if value and not PHONE_RE.match(value):
        return ValidationResult(
            False,
            f"{value} is not a valid international phone number. Expected format: +33612345678",
            "phoneNumber",
        )
    return VALID


def validate_password_strength(value: Optional[str]) -> ValidationResult:
    errors = validate_password(value or "")
    if errors:
        return ValidationResult(False, "; ".join(errors), "password")
    return VALID


def validate_interests(values: Optional[List[str]]) -> ValidationResult:
    unknown = [v for v in values or [] if v not in INTERESTS]
    if unknown:
        return ValidationResult(
            False,
            f"Unknown interest(s): {', '.join(unknown)}. Allowed: {', '.join(INTERESTS)}",
            "interests",
        )
    return VALID


def validate_event_dates(start_date: Optional[datetime], end_date: Optional[datetime]) -> ValidationResult:
    if start_date and end_date and end_date < start_date:
        return ValidationResult(False, "End date must be after start date", "endDate")
    return VALID


def validate_contact(contact_type: str, rating: Optional[int], message: Optional[str]) -> ValidationResult:
    if contact_type not in CONTACT_TYPES:
        return ValidationResult(False, f"Type must be one of: {', '.join(CONTACT_TYPES)}", "type")
    if contact_type == "review" and rating is None:
        return ValidationResult(False, "Rating is required for reviews", "rating")
    if rating is not None and not 1 <= rating <= 5:
        return ValidationResult(False, "Rating must be between 1 and 5", "rating")
    if not message or not message.strip():
        return ValidationResult(False, "Message is required", "message")
    if len(message) > CONTACT_MESSAGE_MAX_LENGTH:
        return ValidationResult(
            False, f"Message cannot exceed {CONTACT_MESSAGE_MAX_LENGTH} characters", "message"
        )
    return VALID


def validate_status_transition(current: str, new: str) -> ValidationResult:
    if new not in CONTACT_STATUS_TRANSITIONS:
        return ValidationResult(
            False, f"Status must be one of: {', '.join(CONTACT_STATUS_TRANSITIONS)}", "status"
        )
    if new != current and new not in CONTACT_STATUS_TRANSITIONS.get(current, set()):
        return ValidationResult(False, f"Cannot change status from '{current}' to '{new}'", "status")
    return VALID


def ensure_valid(*results: ValidationResult) -> None:
    """Raise a BadRequestError listing every failed result."""
    failures = [r for r in results if not r.is_valid]
    if failures:
        errors: List[Dict[str, Any]] = [{"field": r.field, "message": r.message} for r in failures]
        raise BadRequestError(failures[0].message, errors=errors)


def check(result: ValidationResult) -> None:
    """Pydantic validator helper: raise ValueError for an invalid result."""
    if not result.is_valid:
        raise ValueError(result.message)
