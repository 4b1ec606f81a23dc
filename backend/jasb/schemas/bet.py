"""Bet, option and stake Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from jasb.models.bet import Bet, BetProgress, Option, Stake
from jasb.schemas.common import BaseSchema, VersionedRequest
from jasb.schemas.feed import UserSummary


class StakeResponse(BaseSchema):
    user: UserSummary
    amount: int
    message: Optional[str]
    placed_at: datetime
    refunded: bool

    @classmethod
    def from_stake(cls, stake: Stake) -> "StakeResponse":
        return cls(
            user=UserSummary(id=stake.owner.slug, name=stake.owner.name),
            amount=stake.amount,
            message=stake.message,
            placed_at=stake.placed_at,
            refunded=stake.refunded,
        )


class OptionResponse(BaseSchema):
    id: str
    name: str
    image: Optional[str]
    order: int
    won: bool
    version: int
    stakes: list[StakeResponse]

    @classmethod
    def from_option(cls, option: Option) -> "OptionResponse":
        return cls(
            id=option.slug,
            name=option.name,
            image=option.image,
            order=option.order,
            won=option.won,
            version=option.version,
            stakes=[StakeResponse.from_stake(s) for s in option.stakes],
        )


class BetResponse(BaseSchema):
    """Bet response schema."""

    game: str
    id: str
    name: str
    description: str
    spoiler: bool
    lock_moment: str
    progress: BetProgress
    cancelled_reason: Optional[str]
    resolved: Optional[datetime]
    author: UserSummary
    options: list[OptionResponse]
    version: int
    created: datetime
    modified: datetime

    @classmethod
    def from_bet(cls, bet: Bet) -> "BetResponse":
        return cls(
            game=bet.game.slug,
            id=bet.slug,
            name=bet.name,
            description=bet.description,
            spoiler=bet.spoiler,
            lock_moment=bet.lock_moment.slug,
            progress=bet.progress,
            cancelled_reason=bet.cancelled_reason,
            resolved=bet.resolved,
            author=UserSummary(id=bet.author.slug, name=bet.author.name),
            options=[OptionResponse.from_option(o) for o in bet.options],
            version=bet.version,
            created=bet.created,
            modified=bet.modified,
        )


class NewOption(BaseSchema):
    id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    image: Optional[str] = None
    order: Optional[int] = None


class OptionEdit(BaseSchema):
    id: str
    version: int = Field(ge=0)
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    image: Optional[str] = None
    order: Optional[int] = None


class BetCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    spoiler: bool = False
    lock_moment: str
    options: list[NewOption]


class BetEdit(VersionedRequest):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    spoiler: Optional[bool] = None
    lock_moment: Optional[str] = None
    remove_options: list[str] = Field(default_factory=list)
    edit_options: list[OptionEdit] = Field(default_factory=list)
    add_options: list[NewOption] = Field(default_factory=list)


class CompleteRequest(VersionedRequest):
    winners: list[str] = Field(min_length=1)


class CancelRequest(VersionedRequest):
    reason: str = Field(min_length=1)


class StakeRequest(BaseSchema):
    amount: int
    message: Optional[str] = None
    version: Optional[int] = Field(default=None, ge=0)


class BalanceResponse(BaseSchema):
    balance: int
