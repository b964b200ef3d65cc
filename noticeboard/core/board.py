"""
Noticeboard Main Class

Central orchestrator: builds every component from configuration.
"""

import logging
from typing import Optional

from ..config import Config
from ..db.connection import Database
from .auth import Authenticator
from .broadcasts import BroadcastService
from .crypto import CryptoManager
from .guard import AccessGuard
from .tokens import TokenManager

logger = logging.getLogger(__name__)


class NoticeBoard:
    """
    Main Noticeboard class - owns the database and the services on top.

    Responsibilities:
    - Open the database and run migrations
    - Build the password hasher and token manager from config
    - Expose the authenticator, access guard and broadcast service
    - Close the database on shutdown
    """

    def __init__(self, config: Config):
        """
        Initialize Noticeboard with configuration.

        Args:
            config: Loaded configuration object
        """
        self.config = config

        self.crypto = CryptoManager(
            time_cost=config.crypto.argon2_time_cost,
            memory_cost_kb=config.crypto.argon2_memory_kb,
            parallelism=config.crypto.argon2_parallelism
        )
        self.tokens = TokenManager(
            secret=config.auth.jwt_secret,
            ttl_days=config.auth.token_ttl_days
        )
        self.guard = AccessGuard(self.tokens)

        # These will be initialized in setup()
        self.db: Optional[Database] = None
        self.auth: Optional[Authenticator] = None
        self.broadcasts: Optional[BroadcastService] = None

        logger.info("Noticeboard initialized")

    def setup(self):
        """Open the database and build the services that use it."""
        logger.info("Setting up Noticeboard components...")

        self.db = Database(self.config.database.path)
        self.db.initialize()

        self.auth = Authenticator(self.db, self.crypto, self.tokens)
        self.broadcasts = BroadcastService(
            self.db,
            default_page_size=self.config.broadcasts.default_page_size
        )

        logger.info("Noticeboard setup complete")

    def shutdown(self):
        """Release the database connection."""
        if self.db:
            self.db.close()
            self.db = None
        logger.info("Noticeboard shutdown complete")
