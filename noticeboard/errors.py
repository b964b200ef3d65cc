"""
Noticeboard Error Taxonomy

Every failure the core reports to a caller is one of these kinds. Each
carries a message that is safe to show to the client and the HTTP status
the web layer answers with. Anything else is an unclassified fault.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class FieldError:
    """A single violated field in a validation failure."""
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class NoticeBoardError(Exception):
    """Base class for all classified noticeboard errors."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(NoticeBoardError):
    """Malformed or missing input; the caller can fix and resubmit."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list[FieldError], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(message)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([FieldError(field, message)])


class ConflictError(NoticeBoardError):
    """Uniqueness violation."""

    status_code = 400
    default_message = "User already exists"


class AuthError(NoticeBoardError):
    """Bad credentials or an invalid/expired token."""

    status_code = 401
    default_message = "Not authenticated"


class CredentialsError(AuthError):
    """Login rejected. Same message for unknown email and wrong password."""

    status_code = 400
    default_message = "Invalid credentials"


class TokenError(AuthError):
    """Bearer token missing, malformed, forged or expired."""

    status_code = 401
    default_message = "invalid or expired token"


class ForbiddenError(NoticeBoardError):
    """Authenticated but not allowed to do this."""

    status_code = 403
    default_message = "Not authorized"


class NotFoundError(NoticeBoardError):
    """No such resource."""

    status_code = 404
    default_message = "Not found"
