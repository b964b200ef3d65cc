"""Noticeboard Database Module - SQLite database operations."""

from .connection import Database
from .models import User, Broadcast, Identity, Role, Urgency, BroadcastType, BroadcastStatus

__all__ = [
    "Database",
    "User",
    "Broadcast",
    "Identity",
    "Role",
    "Urgency",
    "BroadcastType",
    "BroadcastStatus",
]
