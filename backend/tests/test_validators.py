from datetime import datetime, timedelta

import pytest

from ateleslie.exceptions import BadRequestError
from ateleslie.utils import validators
from ateleslie.utils.password_policy import validate_password


@pytest.mark.parametrize("username,valid", [
    ("abc", True),
    ("user_name_42", True),
    ("ab", False),
    ("a" * 31, False),
    ("bad-name", False),
    ("", False),
])
def test_validate_username(username, valid):
    assert validators.validate_username(username).is_valid is valid


def test_validate_email():
    assert validators.validate_email("jane@example.com").is_valid
    result = validators.validate_email("not-an-email")
    assert not result.is_valid
    assert result.field == "email"


@pytest.mark.parametrize("number,valid", [
    (None, True),
    ("+33612345678", True),
    ("0612345678", False),
    ("+0612345678", False),
    ("+1234567890123456", False),
])
def test_validate_phone_number(number, valid):
    assert validators.validate_phone_number(number).is_valid is valid


def test_password_policy_reports_each_missing_rule():
    errors = validate_password("abc")
    assert any("at least 8" in e for e in errors)
    assert any("uppercase" in e for e in errors)
    assert any("number" in e for e in errors)
    assert any("special" in e for e in errors)


def test_password_policy_rejects_common_passwords():
    assert "Password is too common" in validate_password("Password123!")


def test_password_policy_accepts_strong_password():
    assert validate_password("Str0ng!Passw0rd") == []


def test_validate_interests_rejects_unknown_tags():
    assert validators.validate_interests(["music", "arts"]).is_valid
    result = validators.validate_interests(["music", "knitting"])
    assert not result.is_valid
    assert "knitting" in result.message


def test_event_end_cannot_precede_start():
    start = datetime(2026, 5, 1, 10)
    assert validators.validate_event_dates(start, start).is_valid
    assert validators.validate_event_dates(start, start + timedelta(hours=2)).is_valid
    assert not validators.validate_event_dates(start, start - timedelta(minutes=1)).is_valid


def test_review_requires_rating():
    result = validators.validate_contact("review", None, "Lovely workshop")
    assert not result.is_valid
    assert result.field == "rating"
    assert validators.validate_contact("review", 5, "Lovely workshop").is_valid
    assert validators.validate_contact("information", None, "When do you open?").is_valid


def test_contact_rating_and_message_bounds():
    assert not validators.validate_contact("review", 6, "Hi").is_valid
    assert not validators.validate_contact("callback", None, "   ").is_valid
    assert not validators.validate_contact("callback", None, "x" * 1001).is_valid
    assert validators.validate_contact("callback", None, "x" * 1000).is_valid


@pytest.mark.parametrize("current,new,valid", [
    ("pending", "in-progress", True),
    ("pending", "closed", True),
    ("in-progress", "resolved", True),
    ("resolved", "closed", True),
    ("resolved", "resolved", True),
    ("closed", "pending", False),
    ("resolved", "in-progress", False),
    ("in-progress", "pending", False),
    ("pending", "archived", False),
])
def test_status_transitions(current, new, valid):
    assert validators.validate_status_transition(current, new).is_valid is valid


def test_ensure_valid_collects_field_errors():
    with pytest.raises(BadRequestError) as exc_info:
        validators.ensure_valid(
            validators.validate_username("x"),
            validators.validate_email("nope"),
            validators.VALID,
        )
    assert exc_info.value.status_code == 400
    assert [e["field"] for e in exc_info.value.errors] == ["username", "email"]
