"""Database models module."""

from jasb.models.audit import AuditEntry, AuditEvent, RefundReason
from jasb.models.bet import Bet, BetProgress, Option, Stake
from jasb.models.feed import FeedItem
from jasb.models.game import Game, GameProgress, LockMoment
from jasb.models.notification import Notification
from jasb.models.user import Permission, User, UserSession

__all__ = [
    "AuditEntry",
    "AuditEvent",
    "Bet",
    "BetProgress",
    "FeedItem",
    "Game",
    "GameProgress",
    "LockMoment",
    "Notification",
    "Option",
    "Permission",
    "RefundReason",
    "Stake",
    "User",
    "UserSession",
]
