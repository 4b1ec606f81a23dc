"""Pydantic schemas module."""

from jasb.schemas.bet import (
    BalanceResponse,
    BetCreate,
    BetEdit,
    BetResponse,
    CancelRequest,
    CompleteRequest,
    NewOption,
    OptionEdit,
    OptionResponse,
    StakeRequest,
    StakeResponse,
)
from jasb.schemas.common import BaseSchema, ErrorResponse, VersionedRequest
from jasb.schemas.feed import (
    BetComplete,
    FeedEvent,
    FeedItemResponse,
    Highlighted,
    IdAndName,
    NewBet,
    NotableStake,
    UserSummary,
    feed_event_adapter,
)
from jasb.schemas.game import (
    BetLockStatus,
    GameCreate,
    GameEdit,
    GameResponse,
    GameSummary,
    LockMomentCreate,
    LockMomentEdit,
    LockMomentResponse,
    LockMomentStatus,
)
from jasb.schemas.notification import (
    BetDetails,
    BetFinished,
    BetReverted,
    Gifted,
    NotificationPayload,
    NotificationResponse,
    Refunded,
    notification_payload_adapter,
)
from jasb.schemas.user import (
    AuditEntryResponse,
    BalanceHistoryResponse,
    BankruptcyStats,
    DebtEntry,
    GamePermission,
    LeaderboardEntry,
    LoginResponse,
    PermissionRequest,
    UserDetailResponse,
    UserResponse,
)

__all__ = [
    "AuditEntryResponse",
    "BalanceHistoryResponse",
    "BalanceResponse",
    "BankruptcyStats",
    "BaseSchema",
    "BetComplete",
    "BetCreate",
    "BetDetails",
    "BetEdit",
    "BetFinished",
    "BetLockStatus",
    "BetResponse",
    "BetReverted",
    "CancelRequest",
    "CompleteRequest",
    "DebtEntry",
    "ErrorResponse",
    "FeedEvent",
    "FeedItemResponse",
    "GameCreate",
    "GameEdit",
    "GamePermission",
    "GameResponse",
    "GameSummary",
    "Gifted",
    "Highlighted",
    "IdAndName",
    "LeaderboardEntry",
    "LockMomentCreate",
    "LockMomentEdit",
    "LockMomentResponse",
    "LockMomentStatus",
    "LoginResponse",
    "NewBet",
    "NewOption",
    "NotableStake",
    "NotificationPayload",
    "NotificationResponse",
    "OptionEdit",
    "OptionResponse",
    "PermissionRequest",
    "Refunded",
    "StakeRequest",
    "StakeResponse",
    "UserDetailResponse",
    "UserResponse",
    "UserSummary",
    "VersionedRequest",
    "feed_event_adapter",
    "notification_payload_adapter",
]
