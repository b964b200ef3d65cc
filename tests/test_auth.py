"""
Tests for Noticeboard authentication, credential store and access guard
"""

import pytest

from noticeboard.core.auth import Authenticator
from noticeboard.core.crypto import CryptoManager
from noticeboard.core.guard import AccessGuard, extract_bearer_token
from noticeboard.core.tokens import TokenManager
from noticeboard.db.connection import Database
from noticeboard.db.models import Role
from noticeboard.db.users import UserRepository
from noticeboard.errors import (
    AuthError,
    ConflictError,
    CredentialsError,
    ForbiddenError,
    NotFoundError,
    TokenError,
    ValidationError,
)


class MockBoard:
    """Minimal set of components for auth tests."""

    def __init__(self, db_path=":memory:"):
        self.crypto = CryptoManager(
            time_cost=1,
            memory_cost_kb=8192,
            parallelism=1
        )
        self.tokens = TokenManager("test-secret")

        self.db = Database(db_path)
        self.db.initialize()

        self.auth = Authenticator(self.db, self.crypto, self.tokens)
        self.guard = AccessGuard(self.tokens)
        self.user_repo = UserRepository(self.db)


class TestRegistration:
    """Tests for account registration."""

    def setup_method(self):
        """Set up test fixtures."""
        self.board = MockBoard()
        self.auth = self.board.auth

    def test_register_returns_public_user_and_token(self):
        """Registration returns the public view and a working token."""
        user, token = self.auth.register("alice", "alice@example.com", "secret123")

        assert user["username"] == "alice"
        assert user["email"] == "alice@example.com"
        assert user["role"] == "user"
        assert "password_hash" not in user
        assert "password" not in user

        identity = self.auth.validate(token)
        assert identity.id == user["id"]
        assert identity.role == Role.USER

    def test_password_is_hashed(self):
        """The stored password is an Argon2 hash, not the plaintext."""
        user, _ = self.auth.register("alice", "alice@example.com", "secret123")
        stored = self.board.user_repo.get_user_by_id(user["id"])

        assert stored.password_hash != "secret123"
        assert self.board.crypto.verify_password("secret123", stored.password_hash)

    def test_register_defaults(self):
        """New accounts are active users with empty preferences."""
        user, _ = self.auth.register("alice", "alice@example.com", "secret123")
        stored = self.board.user_repo.get_user_by_id(user["id"])

        assert stored.role == Role.USER
        assert stored.is_active is True
        assert stored.preferences == {}
        assert stored.last_login_us is None

    def test_duplicate_email_conflicts(self):
        """Registering an email already in use fails."""
        self.auth.register("alice", "alice@example.com", "secret123")

        with pytest.raises(ConflictError) as exc:
            self.auth.register("bob", "alice@example.com", "secret123")
        assert exc.value.message == "User already exists"

    def test_duplicate_email_different_case_conflicts(self):
        """Emails compare case-insensitively."""
        self.auth.register("alice", "alice@example.com", "secret123")

        with pytest.raises(ConflictError):
            self.auth.register("bob", "Alice@Example.COM", "secret123")

    def test_duplicate_username_conflicts(self):
        """Registering a username already in use fails with the same message."""
        self.auth.register("alice", "alice@example.com", "secret123")

        with pytest.raises(ConflictError) as exc:
            self.auth.register("alice", "other@example.com", "secret123")
        assert exc.value.message == "User already exists"

    def test_email_normalized_before_duplicate_check(self):
        """Padded, mixed-case emails are stored normalized and collide with their plain form."""
        user, _ = self.auth.register("alice", "  Alice@Example.COM ", "secret123")
        assert user["email"] == "alice@example.com"

        with pytest.raises(ConflictError):
            self.auth.register("bob", " alice@example.com", "secret123")

    def test_usernames_are_case_sensitive(self):
        """Usernames differing only by case are distinct accounts."""
        first, _ = self.auth.register("alice", "alice@example.com", "secret123")
        second, _ = self.auth.register("Alice", "alice2@example.com", "secret123")

        assert first["id"] != second["id"]

    def test_store_enforces_uniqueness_without_precheck(self):
        """The UNIQUE constraint rejects duplicates even if the pre-check is skipped."""
        repo = self.board.user_repo
        repo.create_user("alice", "alice@example.com", "hash")

        with pytest.raises(ConflictError):
            repo.create_user("alice", "new@example.com", "hash")
        with pytest.raises(ConflictError):
            repo.create_user("carol", "alice@example.com", "hash")

    def test_missing_fields_listed(self):
        """Every missing field is reported at once."""
        with pytest.raises(ValidationError) as exc:
            self.auth.register(None, "", None)

        fields = {e.field for e in exc.value.errors}
        assert fields == {"username", "email", "password"}

    def test_invalid_fields(self):
        """Malformed email, short username and short password are rejected."""
        with pytest.raises(ValidationError) as exc:
            self.auth.register("al", "not-an-email", "123")

        fields = {e.field for e in exc.value.errors}
        assert fields == {"username", "email", "password"}

    def test_create_admin(self):
        """Admin bootstrap creates an admin account."""
        user = self.auth.create_admin("root", "root@example.com", "secret123")
        assert user["role"] == "admin"


class TestLogin:
    """Tests for login."""

    def setup_method(self):
        """Set up test fixtures."""
        self.board = MockBoard()
        self.auth = self.board.auth
        self.user, _ = self.auth.register("alice", "alice@example.com", "secret123")

    def test_login_success(self):
        """Correct credentials return the user with preferences and a token."""
        user, token = self.auth.login("alice@example.com", "secret123")

        assert user["id"] == self.user["id"]
        assert user["preferences"] == {}
        assert self.auth.validate(token).id == self.user["id"]

    def test_login_email_case_insensitive(self):
        """Login matches the email regardless of case."""
        user, _ = self.auth.login("ALICE@example.com", "secret123")
        assert user["id"] == self.user["id"]

    def test_login_updates_last_login(self):
        """Successful login stamps last_login."""
        self.auth.login("alice@example.com", "secret123")
        stored = self.board.user_repo.get_user_by_id(self.user["id"])

        assert stored.last_login_us is not None

    def test_wrong_password_and_unknown_email_look_the_same(self):
        """Both failures raise the same kind with the same message."""
        with pytest.raises(CredentialsError) as wrong_password:
            self.auth.login("alice@example.com", "wrong-password")
        with pytest.raises(CredentialsError) as unknown_email:
            self.auth.login("nobody@example.com", "secret123")

        assert type(wrong_password.value) is type(unknown_email.value)
        assert wrong_password.value.message == unknown_email.value.message == "Invalid credentials"
        assert wrong_password.value.status_code == 400

    def test_failed_login_does_not_touch_last_login(self):
        """A rejected login leaves last_login alone."""
        with pytest.raises(CredentialsError):
            self.auth.login("alice@example.com", "wrong-password")

        stored = self.board.user_repo.get_user_by_id(self.user["id"])
        assert stored.last_login_us is None

    def test_deactivated_account_forbidden(self):
        """A deactivated account with the right password gets ForbiddenError."""
        self.board.user_repo.set_active(self.user["id"], False)

        with pytest.raises(ForbiddenError) as exc:
            self.auth.login("alice@example.com", "secret123")
        assert exc.value.message == "Account is deactivated"
        assert not isinstance(exc.value, AuthError)

    def test_deactivated_account_wrong_password_is_generic(self):
        """Activity is only checked once the password verifies."""
        self.board.user_repo.set_active(self.user["id"], False)

        with pytest.raises(CredentialsError):
            self.auth.login("alice@example.com", "wrong-password")

    def test_deactivated_account_token_still_valid(self):
        """Outstanding tokens survive deactivation until they expire."""
        _, token = self.auth.login("alice@example.com", "secret123")
        self.board.user_repo.set_active(self.user["id"], False)

        assert self.auth.validate(token).id == self.user["id"]

    def test_missing_credentials(self):
        """Missing email or password is a validation failure."""
        with pytest.raises(ValidationError) as exc:
            self.auth.login("", None)

        assert {e.field for e in exc.value.errors} == {"email", "password"}

    def test_admin_token_carries_role(self):
        """Admin logins produce admin identities."""
        self.auth.create_admin("root", "root@example.com", "secret123")
        _, token = self.auth.login("root@example.com", "secret123")

        assert self.auth.validate(token).is_admin


class TestProfile:
    """Tests for reading and updating one's own profile."""

    def setup_method(self):
        """Set up test fixtures."""
        self.board = MockBoard()
        self.auth = self.board.auth
        self.user, _ = self.auth.register("alice", "alice@example.com", "secret123")
        self.auth.register("bob", "bob@example.com", "secret123")

    def test_get_profile(self):
        """Profile includes account details but no hash."""
        profile = self.auth.get_profile(self.user["id"])

        assert profile["username"] == "alice"
        assert profile["isActive"] is True
        assert profile["preferences"] == {}
        assert "password_hash" not in profile

    def test_get_profile_missing_user(self):
        """Profile of a vanished user is not found."""
        with pytest.raises(NotFoundError):
            self.auth.get_profile(9999)

    def test_update_allowed_fields(self):
        """Username, email and preferences can be changed."""
        profile = self.auth.update_profile(self.user["id"], {
            "username": "alice2",
            "email": "alice2@example.com",
            "preferences": {"theme": "dark"},
        })

        assert profile["username"] == "alice2"
        assert profile["email"] == "alice2@example.com"
        assert profile["preferences"] == {"theme": "dark"}

    def test_update_ignores_privileged_fields(self):
        """Role, activity and password cannot be changed through the profile."""
        self.auth.update_profile(self.user["id"], {
            "role": "admin",
            "isActive": False,
            "is_active": False,
            "password": "hacked",
            "password_hash": "hacked",
        })
        stored = self.board.user_repo.get_user_by_id(self.user["id"])

        assert stored.role == Role.USER
        assert stored.is_active is True
        assert self.board.crypto.verify_password("secret123", stored.password_hash)

    def test_update_to_taken_username_conflicts(self):
        """Taking another user's username fails."""
        with pytest.raises(ConflictError):
            self.auth.update_profile(self.user["id"], {"username": "bob"})

    def test_update_invalid_values(self):
        """Invalid profile values are rejected."""
        with pytest.raises(ValidationError) as exc:
            self.auth.update_profile(self.user["id"], {
                "email": "nope",
                "preferences": ["not", "a", "dict"],
            })

        assert {e.field for e in exc.value.errors} == {"email", "preferences"}


class TestAccessGuard:
    """Tests for bearer token extraction and the guard."""

    def setup_method(self):
        """Set up test fixtures."""
        self.board = MockBoard()
        self.user, self.token = self.board.auth.register("alice", "alice@example.com", "secret123")

    def test_extract_bearer_token(self):
        """Only well-formed Bearer headers yield a token."""
        assert extract_bearer_token("Bearer abc") == "abc"
        assert extract_bearer_token("bearer abc") == "abc"
        assert extract_bearer_token("Basic abc") is None
        assert extract_bearer_token("Bearer") is None
        assert extract_bearer_token("Bearer a b") is None
        assert extract_bearer_token("") is None
        assert extract_bearer_token(None) is None

    def test_valid_header(self):
        """A valid token resolves to the caller's identity."""
        identity = self.board.guard.authenticate({"Authorization": f"Bearer {self.token}"})

        assert identity.id == self.user["id"]
        assert identity.role == Role.USER

    def test_missing_header(self):
        """No header means no access."""
        with pytest.raises(TokenError):
            self.board.guard.authenticate({})

    def test_malformed_header(self):
        """A header without the Bearer scheme is rejected."""
        with pytest.raises(TokenError):
            self.board.guard.authenticate({"Authorization": self.token})

    def test_invalid_token(self):
        """A forged token is rejected."""
        with pytest.raises(TokenError):
            self.board.guard.authenticate({"Authorization": "Bearer not.a.token"})
