"""
Noticeboard Access Control Guard

Resolves the caller of a protected operation from its bearer token.
Holds no state between requests.
"""

import logging
from typing import Mapping, Optional

from ..db.models import Identity
from ..errors import TokenError
from .tokens import TokenManager

logger = logging.getLogger(__name__)


AUTH_HEADER = "Authorization"
AUTH_SCHEME = "bearer"


def extract_bearer_token(header_value: Optional[str]) -> Optional[str]:
    """Pull the token out of an ``Authorization: Bearer <token>`` value."""
    if not header_value:
        return None
    parts = header_value.strip().split()
    if len(parts) != 2 or parts[0].lower() != AUTH_SCHEME:
        return None
    return parts[1]


class AccessGuard:
    """Gate in front of protected operations."""

    def __init__(self, tokens: TokenManager):
        self.tokens = tokens

    def authenticate(self, headers: Mapping[str, str]) -> Identity:
        """
        Identity of the caller carrying these request headers.

        Raises:
            TokenError: header missing, malformed, or token invalid/expired
        """
        token = extract_bearer_token(headers.get(AUTH_HEADER))
        if token is None:
            logger.debug("Request without a usable bearer token")
            raise TokenError()
        return self.tokens.validate(token)
