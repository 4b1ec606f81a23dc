"""Ledger services."""

from jasb.services.account_service import AccountService, account_service
from jasb.services.auth_service import AuthService, auth_service
from jasb.services.bet_service import BetService, bet_service
from jasb.services.emitter import (
    Collaborators,
    Emitter,
    FeedRelay,
    FeedSink,
    NotificationSink,
    StoreFeedSink,
    StoreNotificationSink,
    default_collaborators,
)
from jasb.services.feed_service import FeedService, feed_service
from jasb.services.game_service import GameService, game_service
from jasb.services.notification_service import NotificationService, notification_service
from jasb.services.resolution_service import ResolutionService, resolution_service
from jasb.services.stake_service import StakeService, stake_service
from jasb.services.version_guard import VersionGuard, version_guard

__all__ = [
    "AccountService",
    "AuthService",
    "BetService",
    "Collaborators",
    "Emitter",
    "FeedRelay",
    "FeedService",
    "FeedSink",
    "GameService",
    "NotificationService",
    "NotificationSink",
    "ResolutionService",
    "StakeService",
    "StoreFeedSink",
    "StoreNotificationSink",
    "VersionGuard",
    "account_service",
    "auth_service",
    "bet_service",
    "default_collaborators",
    "feed_service",
    "game_service",
    "notification_service",
    "resolution_service",
    "stake_service",
    "version_guard",
]
