"""Game and lock moment Pydantic schemas."""

from typing import Optional

from pydantic import Field

from jasb.models.game import GameProgress
from jasb.schemas.common import BaseSchema, TimestampSchema, VersionedRequest


class GameResponse(TimestampSchema):
    slug: str
    name: str
    progress: GameProgress
    order: Optional[int]
    version: int


class GameSummary(GameResponse):
    bets: int


class GameCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=200)
    progress: GameProgress = GameProgress.FUTURE
    order: Optional[int] = None


class GameEdit(VersionedRequest):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    progress: Optional[GameProgress] = None
    order: Optional[int] = None


class LockMomentResponse(TimestampSchema):
    slug: str
    name: str
    order: int
    version: int


class LockMomentCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=200)
    order: int = 0


class LockMomentEdit(VersionedRequest):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    order: Optional[int] = None


class BetLockStatus(BaseSchema):
    bet_id: str
    bet_name: str
    bet_version: int
    locked: bool


class LockMomentStatus(BaseSchema):
    lock_moment: LockMomentResponse
    bets: list[BetLockStatus]
