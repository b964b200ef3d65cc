"""
Noticeboard Authentication

Registration, login, token validation and the user's own profile.
"""

import logging
import secrets
from typing import Any, Optional

from ..db.connection import Database
from ..db.models import Identity, Role, User
from ..db.users import UserRepository, normalize_email
from ..errors import (
    ConflictError,
    CredentialsError,
    FieldError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from ..utils.formatting import format_timestamp
from .crypto import CryptoManager
from .tokens import TokenManager
from .validation import validate_profile_update, validate_registration

logger = logging.getLogger(__name__)


# Fields a user may change on their own profile
PROFILE_FIELDS = ("username", "email", "preferences")


def public_user(user: User, include_preferences: bool = False) -> dict[str, Any]:
    """Client-facing view of a user. Never includes the password hash."""
    data = {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role.value,
    }
    if include_preferences:
        data["preferences"] = user.preferences
    return data


def profile_view(user: User) -> dict[str, Any]:
    """Full account view for the account owner."""
    data = public_user(user, include_preferences=True)
    data.update({
        "isActive": user.is_active,
        "lastLogin": format_timestamp(user.last_login_us),
        "createdAt": format_timestamp(user.created_at_us),
        "updatedAt": format_timestamp(user.updated_at_us),
    })
    return data


class Authenticator:
    """
    Verifies credentials and issues bearer tokens.

    Account-active status is enforced at login only. Tokens already issued
    to a deactivated account keep working until they expire.
    """

    def __init__(self, db: Database, crypto: CryptoManager, tokens: TokenManager):
        self.crypto = crypto
        self.tokens = tokens
        self.user_repo = UserRepository(db)

        # Verified against when the email is unknown so both failure
        # paths cost one hash verification
        self._dummy_hash = crypto.hash_password(secrets.token_urlsafe(16))

    def register(self, username: Any, email: Any, password: Any) -> tuple[dict, str]:
        """
        Create an account and log it in.

        Returns:
            (public user, token)

        Raises:
            ValidationError: missing or invalid fields
            ConflictError: username or email already in use
        """
        user = self._create_account(username, email, password, Role.USER)
        logger.info(f"User registered: id={user.id}")
        return public_user(user), self.tokens.issue(user.id, user.role)

    def create_admin(self, username: Any, email: Any, password: Any) -> dict:
        """Create an admin account (CLI bootstrap). Returns the public user."""
        user = self._create_account(username, email, password, Role.ADMIN)
        logger.info(f"Admin account created: id={user.id}")
        return public_user(user)

    def _create_account(self, username: Any, email: Any, password: Any, role: Role) -> User:
        errors = validate_registration(username, email, password)
        if errors:
            raise ValidationError(errors)

        username = username.strip()
        email = normalize_email(email)

        # Fast path; the UNIQUE constraints are what actually guarantee it
        if self.user_repo.find_user_by_email_or_username(email, username):
            raise ConflictError("User already exists")

        return self.user_repo.create_user(
            username=username,
            email=email,
            password_hash=self.crypto.hash_password(password),
            role=role
        )

    def login(self, email: Any, password: Any) -> tuple[dict, str]:
        """
        Check credentials and issue a token.

        Returns:
            (public user with preferences, token)

        Raises:
            ValidationError: email or password missing
            CredentialsError: unknown email or wrong password (same message)
            ForbiddenError: correct password but account deactivated
        """
        errors = []
        if not isinstance(email, str) or not email.strip():
            errors.append(FieldError("email", "Email is required"))
        if not isinstance(password, str) or not password:
            errors.append(FieldError("password", "Password is required"))
        if errors:
            raise ValidationError(errors)

        user = self.user_repo.get_user_by_email(email)
        if user is None:
            self.crypto.verify_password(password, self._dummy_hash)
            logger.warning("Failed login: unknown email")
            raise CredentialsError("Invalid credentials")

        if not self.crypto.verify_password(password, user.password_hash):
            logger.warning(f"Failed login: bad password for user {user.id}")
            raise CredentialsError("Invalid credentials")

        if not user.is_active:
            logger.warning(f"Login refused for deactivated user {user.id}")
            raise ForbiddenError("Account is deactivated")

        user.last_login_us = self.user_repo.update_last_login(user.id)

        if self.crypto.needs_rehash(user.password_hash):
            self.user_repo.update_user(
                user.id,
                password_hash=self.crypto.hash_password(password)
            )
            logger.info(f"Rehashed password for user {user.id}")

        logger.info(f"User logged in: id={user.id}")
        return public_user(user, include_preferences=True), self.tokens.issue(user.id, user.role)

    def validate(self, token: str) -> Identity:
        """
        Resolve a bearer token to an identity.

        Raises:
            TokenError: malformed, forged or expired token
        """
        return self.tokens.validate(token)

    def get_profile(self, user_id: int) -> dict:
        """Current user's own account."""
        user = self.user_repo.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return profile_view(user)

    def update_profile(self, user_id: int, fields: dict[str, Any]) -> dict:
        """
        Update username, email and preferences.

        Every other key (role, password, activity flag...) is dropped.

        Raises:
            ValidationError: invalid new values
            ConflictError: new username or email already in use
            NotFoundError: account no longer exists
        """
        updates = {key: fields[key] for key in PROFILE_FIELDS if key in fields}

        errors = validate_profile_update(updates)
        if errors:
            raise ValidationError(errors)

        if "username" in updates:
            updates["username"] = updates["username"].strip()

        user: Optional[User] = self.user_repo.update_user(user_id, **updates)
        if user is None:
            raise NotFoundError("User not found")

        logger.info(f"Profile updated: id={user_id} fields={sorted(updates)}")
        return profile_view(user)
