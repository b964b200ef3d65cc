"""
Noticeboard Cryptography Module

Password hashing with Argon2id: memory-hard, salted, and verified in
constant time by the argon2 library.
"""

import logging

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerifyMismatchError

logger = logging.getLogger(__name__)


class CryptoManager:
    """
    Manages password hashing for Noticeboard.

    Hashes are self-describing Argon2 strings carrying their own salt and
    parameters, so only the encoded string is stored.
    """

    SALT_LENGTH = 16
    HASH_LENGTH = 32

    def __init__(
        self,
        time_cost: int = 3,
        memory_cost_kb: int = 65536,
        parallelism: int = 2
    ):
        """
        Initialize crypto manager with Argon2id parameters.

        Args:
            time_cost: Number of iterations (higher = slower + more secure)
            memory_cost_kb: Memory usage in KB
            parallelism: Number of parallel lanes
        """
        self.time_cost = time_cost
        self.memory_cost_kb = memory_cost_kb
        self.parallelism = parallelism

        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost_kb,
            parallelism=parallelism,
            hash_len=self.HASH_LENGTH,
            salt_len=self.SALT_LENGTH,
            type=Type.ID  # Argon2id - hybrid of Argon2i and Argon2d
        )

        logger.debug(
            f"CryptoManager initialized: time={time_cost}, "
            f"memory={memory_cost_kb}KB, parallelism={parallelism}"
        )

    def hash_password(self, password: str) -> str:
        """
        Hash a password using Argon2id.

        Returns the full Argon2 hash string including parameters and salt.
        """
        return self._hasher.hash(password)

    def verify_password(self, password: str, hash_str: str) -> bool:
        """
        Verify a password against an Argon2id hash.

        Returns True if password matches, False otherwise.
        """
        try:
            self._hasher.verify(hash_str, password)
            return True
        except VerifyMismatchError:
            return False
        except InvalidHashError:
            logger.warning("Stored password hash is not a valid Argon2 hash")
            return False

    def needs_rehash(self, hash_str: str) -> bool:
        """True when a stored hash was made with different parameters."""
        return self._hasher.check_needs_rehash(hash_str)
