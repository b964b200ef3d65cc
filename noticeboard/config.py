"""
Noticeboard Configuration Module

Handles loading, validation, and management of configuration settings.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        raise ImportError("Please install tomli: pip install tomli")

from .utils.pagination import MAX_PAGE_SIZE


DEFAULT_JWT_SECRET = "changeme"
JWT_SECRET_ENV = "NOTICEBOARD_JWT_SECRET"


@dataclass
class ServerConfig:
    """HTTP server settings."""
    host: str = "127.0.0.1"
    port: int = 5000
    debug: bool = False


@dataclass
class DatabaseConfig:
    """Database settings."""
    path: str = "noticeboard.db"


@dataclass
class AuthConfig:
    """Authentication settings."""
    jwt_secret: str = DEFAULT_JWT_SECRET
    token_ttl_days: int = 7
    admin_username: str = "admin"
    admin_email: str = "admin@example.com"


@dataclass
class CryptoConfig:
    """Password hashing settings."""
    argon2_time_cost: int = 3
    argon2_memory_kb: int = 65536  # 64MB
    argon2_parallelism: int = 2


@dataclass
class BroadcastsConfig:
    """Broadcast listing settings."""
    default_page_size: int = 20


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    file: str = ""


@dataclass
class Config:
    """Main configuration container."""
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    crypto: CryptoConfig = field(default_factory=CryptoConfig)
    broadcasts: BroadcastsConfig = field(default_factory=BroadcastsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.auth.jwt_secret:
            errors.append("auth.jwt_secret cannot be empty")
        elif self.auth.jwt_secret == DEFAULT_JWT_SECRET:
            errors.append("auth.jwt_secret must be changed from default")

        if self.auth.token_ttl_days < 1:
            errors.append("auth.token_ttl_days must be at least 1")

        if not 0 < self.server.port < 65536:
            errors.append("server.port must be between 1 and 65535")

        if not 1 <= self.broadcasts.default_page_size <= MAX_PAGE_SIZE:
            errors.append(f"broadcasts.default_page_size must be between 1 and {MAX_PAGE_SIZE}")

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if self.logging.level.upper() not in valid_levels:
            errors.append(f"logging.level must be one of: {valid_levels}")

        return errors

    def save(self, path: Path):
        """Save configuration to TOML file."""
        import toml  # For writing

        data = self._to_dict()

        with open(path, "w") as f:
            toml.dump(data, f)

    def _to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for serialization."""
        from dataclasses import asdict
        return asdict(self)


def load_config(path: Path) -> Config:
    """Load configuration from TOML file, then apply environment overrides."""
    config = Config()

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)

        # Map TOML sections to config dataclasses
        if "server" in data:
            config.server = ServerConfig(**data["server"])

        if "database" in data:
            config.database = DatabaseConfig(**data["database"])

        if "auth" in data:
            config.auth = AuthConfig(**data["auth"])

        if "crypto" in data:
            config.crypto = CryptoConfig(**data["crypto"])

        if "broadcasts" in data:
            config.broadcasts = BroadcastsConfig(**data["broadcasts"])

        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

    secret = os.environ.get(JWT_SECRET_ENV)
    if secret:
        config.auth.jwt_secret = secret

    return config


def create_default_config(path: Path):
    """Create a default configuration file."""
    config = Config()
    config.save(path)
