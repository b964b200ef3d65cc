"""
Noticeboard Data Models

Dataclasses representing database entities.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
from enum import Enum


class Role(Enum):
    """User role enumeration."""
    USER = "user"
    ADMIN = "admin"


class Urgency(Enum):
    """Broadcast urgency enumeration."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BroadcastType(Enum):
    """Broadcast type enumeration."""
    ANNOUNCEMENT = "announcement"
    ALERT = "alert"
    MAINTENANCE = "maintenance"
    UPDATE = "update"
    NEWS = "news"
    MEETING = "meeting"


class BroadcastStatus(Enum):
    """Broadcast lifecycle status."""
    ACTIVE = "active"
    EXPIRED = "expired"
    ARCHIVED = "archived"


@dataclass
class User:
    """Registered user."""
    id: Optional[int] = None
    username: str = ""
    email: str = ""
    password_hash: str = ""
    role: Role = Role.USER
    is_active: bool = True
    last_login_us: Optional[int] = None
    preferences: dict[str, Any] = field(default_factory=dict)
    created_at_us: int = 0
    updated_at_us: int = 0


@dataclass
class Author:
    """Public author details attached to a broadcast."""
    id: int
    username: str
    email: str


@dataclass
class Broadcast:
    """Time-scoped broadcast message."""
    id: Optional[int] = None
    title: str = ""
    message: str = ""
    urgency: Urgency = Urgency.MEDIUM
    type: BroadcastType = BroadcastType.ANNOUNCEMENT
    tags: list[str] = field(default_factory=list)
    created_by: int = 0
    expiry_date_us: Optional[int] = None
    status: BroadcastStatus = BroadcastStatus.ACTIVE
    views: int = 0
    priority: int = 0
    created_at_us: int = 0
    updated_at_us: int = 0
    author: Optional[Author] = None

    def is_expired(self, now_us: int) -> bool:
        """True when an expiry date is set and already behind ``now_us``."""
        return self.expiry_date_us is not None and self.expiry_date_us < now_us


@dataclass
class Identity:
    """Authenticated caller resolved from a bearer token."""
    id: int
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass
class RecentBroadcast:
    """Abbreviated broadcast for the recent-activity list."""
    title: str
    created_at_us: int
    urgency: Urgency


@dataclass
class BroadcastStats:
    """Aggregate statistics over the whole broadcast collection."""
    total: int = 0
    by_urgency: dict[str, int] = field(default_factory=dict)
    by_type: dict[str, int] = field(default_factory=dict)
    active: int = 0
    recent_activity: list[RecentBroadcast] = field(default_factory=list)
