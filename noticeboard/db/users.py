"""
Noticeboard User Database Operations

Credential store: CRUD operations for user accounts.
"""

import json
import sqlite3
import time
import logging
from typing import Any, Optional

from .connection import Database
from .models import User, Role
from ..errors import ConflictError

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Emails compare case-insensitively; store them trimmed and lower-cased."""
    return (email or "").strip().lower()


class UserRepository:
    """Repository for user-related database operations."""

    # Columns update_user() may touch
    UPDATABLE_COLUMNS = (
        "username", "email", "password_hash", "role",
        "is_active", "last_login_us", "preferences",
    )

    def __init__(self, db: Database):
        self.db = db

    def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
        role: Role = Role.USER,
        is_active: bool = True,
        preferences: Optional[dict[str, Any]] = None
    ) -> User:
        """
        Create a new user.

        Uniqueness of username and email is enforced by the UNIQUE
        constraints, so two concurrent registrations cannot both succeed.

        Raises:
            ConflictError: username or email already taken
        """
        now_us = int(time.time() * 1_000_000)
        prefs = preferences or {}

        try:
            cursor = self.db.execute("""
                INSERT INTO users (
                    username, email, password_hash, role, is_active,
                    preferences, created_at_us, updated_at_us
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                username,
                normalize_email(email),
                password_hash,
                role.value,
                1 if is_active else 0,
                json.dumps(prefs),
                now_us,
                now_us
            ))
        except sqlite3.IntegrityError as e:
            raise self._translate_integrity_error(e)

        return User(
            id=cursor.lastrowid,
            username=username,
            email=normalize_email(email),
            password_hash=password_hash,
            role=role,
            is_active=is_active,
            preferences=prefs,
            created_at_us=now_us,
            updated_at_us=now_us
        )

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        row = self.db.fetchone("SELECT * FROM users WHERE id = ?", (user_id,))
        return self._row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)."""
        row = self.db.fetchone(
            "SELECT * FROM users WHERE email = ?",
            (normalize_email(email),)
        )
        return self._row_to_user(row) if row else None

    def find_user_by_email_or_username(self, email: str, username: str) -> Optional[User]:
        """Get the first user matching either the email or the username."""
        row = self.db.fetchone(
            "SELECT * FROM users WHERE email = ? OR username = ? ORDER BY id LIMIT 1",
            (normalize_email(email), username)
        )
        return self._row_to_user(row) if row else None

    def update_user(self, user_id: int, **fields) -> Optional[User]:
        """
        Update the given columns of a user.

        Returns the updated user, or None if no such user exists.

        Raises:
            ConflictError: new username or email already taken
        """
        updates = []
        params: list[Any] = []

        for column in self.UPDATABLE_COLUMNS:
            if column not in fields:
                continue
            value = fields[column]
            if column == "email":
                value = normalize_email(value)
            elif column == "role":
                value = Role(value).value
            elif column == "is_active":
                value = 1 if value else 0
            elif column == "preferences":
                value = json.dumps(value or {})
            updates.append(f"{column} = ?")
            params.append(value)

        if updates:
            updates.append("updated_at_us = ?")
            params.append(int(time.time() * 1_000_000))
            params.append(user_id)
            try:
                self.db.execute(
                    f"UPDATE users SET {', '.join(updates)} WHERE id = ?",
                    tuple(params)
                )
            except sqlite3.IntegrityError as e:
                raise self._translate_integrity_error(e)

        return self.get_user_by_id(user_id)

    def update_last_login(self, user_id: int) -> int:
        """Stamp a successful login. Returns the timestamp written."""
        now_us = int(time.time() * 1_000_000)
        self.db.execute(
            "UPDATE users SET last_login_us = ?, updated_at_us = ? WHERE id = ?",
            (now_us, now_us, user_id)
        )
        return now_us

    def set_active(self, user_id: int, is_active: bool) -> bool:
        """Activate or deactivate an account."""
        now_us = int(time.time() * 1_000_000)
        cursor = self.db.execute(
            "UPDATE users SET is_active = ?, updated_at_us = ? WHERE id = ?",
            (1 if is_active else 0, now_us, user_id)
        )
        return cursor.rowcount > 0

    def _translate_integrity_error(self, error: sqlite3.IntegrityError) -> Exception:
        """Map a constraint violation to the error callers expect."""
        if "UNIQUE" in str(error):
            logger.debug(f"User uniqueness violation: {error}")
            return ConflictError()
        return error

    def _row_to_user(self, row) -> User:
        """Convert database row to User object."""
        return User(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=Role(row["role"]),
            is_active=bool(row["is_active"]),
            last_login_us=row["last_login_us"],
            preferences=json.loads(row["preferences"] or "{}"),
            created_at_us=row["created_at_us"],
            updated_at_us=row["updated_at_us"]
        )
