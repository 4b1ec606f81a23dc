"""User Pydantic schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from jasb.models.audit import AuditEvent
from jasb.schemas.common import BaseSchema


class UserResponse(BaseSchema):
    """User response schema."""

    slug: str
    name: str
    balance: int
    admin: bool
    created: datetime


class UserDetailResponse(UserResponse):
    """User with stake totals."""

    staked: int
    net_worth: int


class LeaderboardEntry(BaseSchema):
    rank: int
    slug: str
    name: str
    balance: int
    staked: int
    net_worth: int


class DebtEntry(BaseSchema):
    rank: int
    slug: str
    name: str
    debt: int


class BankruptcyStats(BaseSchema):
    """What going bankrupt would cost the user."""

    amount_lost: int
    stakes_lost: int
    locked_amount_lost: int
    locked_stakes_lost: int
    balance_after: int


class LoginResponse(BaseSchema):
    user: UserResponse
    session: str
    is_new_user: bool


class PermissionRequest(BaseSchema):
    manage_bets: bool


class GamePermission(BaseSchema):
    """A user's rights on one game."""

    game: str
    game_name: str
    manage_bets: bool


class AuditEntryResponse(BaseSchema):
    """Audit log entry response schema."""

    id: UUID
    event: AuditEvent
    delta: int
    balance_after: int
    bet_id: Optional[UUID] = None
    option_id: Optional[UUID] = None
    stake_amount: Optional[int] = None
    reason: Optional[str] = None
    reverses_id: Optional[UUID] = None
    happened: datetime


class BalanceHistoryResponse(BaseSchema):
    balance: int
    reconstructed: int
    entries: list[AuditEntryResponse] = Field(default_factory=list)
