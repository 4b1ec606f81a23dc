"""Public feed events."""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from jasb.schemas.common import BaseSchema


class IdAndName(BaseModel):
    id: str
    name: str


class UserSummary(BaseModel):
    id: str
    name: str


class NewBet(BaseModel):
    type: Literal["NewBet"] = "NewBet"
    game: IdAndName
    bet: IdAndName
    spoiler: bool


class Highlighted(BaseModel):
    """Biggest payout on a completed bet and everyone who received it."""

    winners: list[UserSummary]
    amount: int


class BetComplete(BaseModel):
    type: Literal["BetComplete"] = "BetComplete"
    game: IdAndName
    bet: IdAndName
    spoiler: bool
    winners: list[IdAndName]
    highlighted: Highlighted
    total_return: int
    winning_stakes: int


class NotableStake(BaseModel):
    type: Literal["NotableStake"] = "NotableStake"
    game: IdAndName
    bet: IdAndName
    spoiler: bool
    option: IdAndName
    user: UserSummary
    message: str
    stake: int


FeedEvent = Annotated[
    Union[NewBet, BetComplete, NotableStake],
    Field(discriminator="type"),
]

feed_event_adapter = TypeAdapter(FeedEvent)


class FeedItemResponse(BaseSchema):
    happened: datetime
    event: FeedEvent
