"""Declarative input validation for the users API.

Each request type has a tuple of FieldRule. Every rule is evaluated and the
first failing rule per field contributes one (field, message) pair; all pairs
are raised together as a single ValidationError.
"""
from __future__ import annotations
import re
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Sequence

from .errors import ValidationError
from .models import UserRequest

EMAIL_MAX_LENGTH = 254
PASSWORD_MIN_EXCLUSIVE = 4

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class FieldRule:
    field: str
    check: Callable[[Any], bool]
    message: str


def not_blank(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def is_email(value: Any) -> bool:
    return (
        isinstance(value, str)
        and len(value) <= EMAIL_MAX_LENGTH
        and EMAIL_PATTERN.match(value) is not None
    )


def longer_than(length: int) -> Callable[[Any], bool]:
    def check(value: Any) -> bool:
        return isinstance(value, str) and len(value) > length
    return check


def optional_string(value: Any) -> bool:
    return value is None or isinstance(value, str)


USER_REQUEST_RULES: Sequence[FieldRule] = (
    FieldRule("username", not_blank, "Username should not be blank"),
    FieldRule("email", is_email, "Email should be valid"),
    FieldRule(
        "password",
        longer_than(PASSWORD_MIN_EXCLUSIVE),
        f"Password should be greater than {PASSWORD_MIN_EXCLUSIVE} characters long",
    ),
    FieldRule("firstName", optional_string, "First name should be a string"),
    FieldRule("lastName", optional_string, "Last name should be a string"),
)


def collect_errors(payload: Mapping[str, Any], rules: Sequence[FieldRule]) -> Dict[str, str]:
    """Evaluate rules against payload and return {field: message} for failures."""
    errors: Dict[str, str] = {}
    for rule in rules:
        if rule.field in errors:
            continue
        if not rule.check(payload.get(rule.field)):
            errors[rule.field] = rule.message
    return errors


def parse_user_request(payload: Mapping[str, Any]) -> UserRequest:
    """Validate a POST /api/users body and build the UserRequest.

    Raises:
        ValidationError: With every invalid field and its message
    """
    errors = collect_errors(payload, USER_REQUEST_RULES)
    if errors:
        raise ValidationError(errors)

    return UserRequest(
        username=payload["username"],
        email=payload["email"],
        password=payload["password"],
        first_name=payload.get("firstName") or "",
        last_name=payload.get("lastName") or "",
    )


def parse_user_id(raw: str) -> uuid.UUID:
    """Parse a path id in canonical 8-4-4-4-12 UUID form.

    Raises:
        ValidationError: If raw is not a canonical UUID
    """
    try:
        uid = uuid.UUID(raw)
    except (ValueError, TypeError, AttributeError):
        uid = None
    # uuid.UUID also accepts braces, urn:uuid: and undashed hex
    if uid is None or str(uid) != raw.lower():
        raise ValidationError({"id": "User id should be a valid UUID"})
    return uid
