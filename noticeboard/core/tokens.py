"""
Noticeboard Bearer Tokens

Signed, self-contained JWTs (HS256). Tokens are stateless: nothing is
stored server-side and expiry is the only way one stops working.
"""

import logging
import time
from typing import Callable

import jwt

from ..db.models import Identity, Role
from ..errors import TokenError

logger = logging.getLogger(__name__)


JWT_ALGORITHM = "HS256"
DEFAULT_TTL_DAYS = 7
SECONDS_PER_DAY = 86400


class TokenManager:
    """
    Issues and validates bearer tokens.

    The signing key is handed in by whoever builds the manager (normally
    from configuration), so tests and environments can each use their own.
    """

    def __init__(
        self,
        secret: str,
        ttl_days: int = DEFAULT_TTL_DAYS,
        clock: Callable[[], float] = time.time
    ):
        """
        Args:
            secret: HMAC signing key
            ttl_days: Validity window from issuance
            clock: Returns the current Unix time in seconds
        """
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self.ttl_seconds = int(ttl_days) * SECONDS_PER_DAY
        self._clock = clock

    def issue(self, user_id: int, role: Role) -> str:
        """Create a token for a user, valid for the configured window."""
        issued_at = int(self._clock())
        payload = {
            "sub": str(user_id),
            "role": role.value,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def validate(self, token: str) -> Identity:
        """
        Check signature and expiry and return the identity inside.

        A token is valid up to and including its expiry second.

        Raises:
            TokenError: malformed, forged, or expired token
        """
        if not token:
            raise TokenError()

        try:
            # Time claims are checked against our own clock below
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                options={
                    "require": ["sub", "role", "iat", "exp"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            logger.debug(f"Token rejected: {e}")
            raise TokenError()

        try:
            expires_at = int(payload["exp"])
            user_id = int(payload["sub"])
            role = Role(payload["role"])
        except (TypeError, ValueError) as e:
            logger.debug(f"Token claims unusable: {e}")
            raise TokenError()

        if self._clock() > expires_at:
            logger.debug(f"Token for user {user_id} expired")
            raise TokenError()

        return Identity(id=user_id, role=role)
