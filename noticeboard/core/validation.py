"""
Noticeboard Input Validation

Explicit checks run before anything is persisted. Every function collects
all violations rather than stopping at the first, so a client can fix its
whole submission in one go.
"""

import re
from typing import Any

from ..db.models import Broadcast, BroadcastStatus, BroadcastType, Urgency
from ..errors import FieldError
from ..utils.formatting import parse_timestamp


MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 30
MIN_PASSWORD_LENGTH = 6
MAX_TITLE_LENGTH = 200
MAX_MESSAGE_LENGTH = 5000

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Payload key -> Broadcast attribute
BROADCAST_FIELDS = {
    "title": "title",
    "message": "message",
    "urgency": "urgency",
    "type": "type",
    "tags": "tags",
    "createdBy": "created_by",
    "expiryDate": "expiry_date_us",
    "status": "status",
    "views": "views",
    "priority": "priority",
}

# Keys a client may supply when creating
CREATE_FIELDS = ("title", "message", "urgency", "type", "tags", "expiryDate")

_ENUM_FIELDS = {
    "urgency": Urgency,
    "type": BroadcastType,
    "status": BroadcastStatus,
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_username(username: Any) -> list[FieldError]:
    if not isinstance(username, str) or not username.strip():
        return [FieldError("username", "Username is required")]
    length = len(username.strip())
    if length < MIN_USERNAME_LENGTH or length > MAX_USERNAME_LENGTH:
        return [FieldError(
            "username",
            f"Username must be {MIN_USERNAME_LENGTH}-{MAX_USERNAME_LENGTH} characters"
        )]
    return []


def check_email(email: Any) -> list[FieldError]:
    if not isinstance(email, str) or not email.strip():
        return [FieldError("email", "Email is required")]
    if not EMAIL_RE.match(email.strip()):
        return [FieldError("email", "Email is not valid")]
    return []


def check_password(password: Any) -> list[FieldError]:
    if not isinstance(password, str) or not password:
        return [FieldError("password", "Password is required")]
    if len(password) < MIN_PASSWORD_LENGTH:
        return [FieldError(
            "password",
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )]
    return []


def validate_registration(username: Any, email: Any, password: Any) -> list[FieldError]:
    """Violations in a registration request."""
    return check_username(username) + check_email(email) + check_password(password)


def validate_profile_update(fields: dict[str, Any]) -> list[FieldError]:
    """Violations in an already-filtered profile update."""
    errors = []
    if "username" in fields:
        errors.extend(check_username(fields["username"]))
    if "email" in fields:
        errors.extend(check_email(fields["email"]))
    if "preferences" in fields and not isinstance(fields["preferences"], dict):
        errors.append(FieldError("preferences", "Preferences must be an object"))
    return errors


def coerce_broadcast_fields(payload: dict[str, Any]) -> tuple[dict[str, Any], list[FieldError]]:
    """
    Convert the known keys of a client payload into Broadcast attributes.

    Unknown keys are ignored. Strings are trimmed, enums looked up, tags
    trimmed with blanks dropped, and expiry dates parsed.

    Returns:
        (attribute -> value, violations)
    """
    values: dict[str, Any] = {}
    errors: list[FieldError] = []

    for key, attr in BROADCAST_FIELDS.items():
        if key not in payload:
            continue
        raw = payload[key]

        if key in ("title", "message"):
            if raw is None:
                values[attr] = ""
            elif isinstance(raw, str):
                values[attr] = raw.strip()
            else:
                errors.append(FieldError(key, f"{key.capitalize()} must be a string"))

        elif key in _ENUM_FIELDS:
            enum_cls = _ENUM_FIELDS[key]
            try:
                values[attr] = enum_cls(raw)
            except ValueError:
                allowed = ", ".join(member.value for member in enum_cls)
                errors.append(FieldError(key, f"{key} must be one of: {allowed}"))

        elif key == "tags":
            if raw is None:
                values[attr] = []
            elif isinstance(raw, list) and all(isinstance(tag, str) for tag in raw):
                values[attr] = [tag.strip() for tag in raw if tag.strip()]
            else:
                errors.append(FieldError(key, "Tags must be a list of strings"))

        elif key == "expiryDate":
            try:
                values[attr] = parse_timestamp(raw)
            except ValueError:
                errors.append(FieldError(key, "Expiry date must be an ISO-8601 timestamp"))

        elif key == "views":
            if _is_int(raw) and raw >= 0:
                values[attr] = raw
            else:
                errors.append(FieldError(key, "Views must be a non-negative integer"))

        elif key in ("createdBy", "priority"):
            if _is_int(raw):
                values[attr] = raw
            else:
                errors.append(FieldError(key, f"{key} must be an integer"))

    return values, errors


def check_broadcast(broadcast: Broadcast) -> list[FieldError]:
    """Violations in a complete broadcast about to be written."""
    errors = []

    if not broadcast.title:
        errors.append(FieldError("title", "Title is required"))
    elif len(broadcast.title) > MAX_TITLE_LENGTH:
        errors.append(FieldError("title", f"Title cannot exceed {MAX_TITLE_LENGTH} characters"))

    if not broadcast.message:
        errors.append(FieldError("message", "Message is required"))
    elif len(broadcast.message) > MAX_MESSAGE_LENGTH:
        errors.append(FieldError(
            "message",
            f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters"
        ))

    return errors
