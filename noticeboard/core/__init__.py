"""Noticeboard Core Module - Orchestrator, authentication and broadcast services."""

from .board import NoticeBoard
from .crypto import CryptoManager
from .tokens import TokenManager
from .auth import Authenticator
from .guard import AccessGuard
from .broadcasts import BroadcastService, effective_status

__all__ = [
    "NoticeBoard",
    "CryptoManager",
    "TokenManager",
    "Authenticator",
    "AccessGuard",
    "BroadcastService",
    "effective_status",
]
