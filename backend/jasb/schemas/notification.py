"""Notification payloads and responses."""

from datetime import datetime
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter

from jasb.schemas.common import BaseSchema


class Gifted(BaseModel):
    """Currency granted by the system."""

    type: Literal["Gifted"] = "Gifted"
    amount: int
    reason: Literal["AccountCreated", "Bankruptcy"]


class BetDetails(BaseModel):
    """Identifiers and names needed to display a bet-related notification."""

    game_id: str
    game_name: str
    bet_id: str
    bet_name: str
    option_id: str
    option_name: str


class Refunded(BetDetails):
    type: Literal["Refunded"] = "Refunded"
    reason: Literal["OptionRemoved", "BetCancelled"]
    amount: int


class BetFinished(BetDetails):
    type: Literal["BetFinished"] = "BetFinished"
    result: Literal["Win", "Loss"]
    amount: int


class BetReverted(BetDetails):
    type: Literal["BetReverted"] = "BetReverted"
    reverted: Literal["Complete", "Cancelled"]
    # Currency taken back by the revert; zero for stakes that had lost
    amount: int


NotificationPayload = Annotated[
    Union[Gifted, Refunded, BetFinished, BetReverted],
    Field(discriminator="type"),
]

notification_payload_adapter = TypeAdapter(NotificationPayload)


class NotificationResponse(BaseSchema):
    """Notification response schema."""

    id: UUID
    happened: datetime
    read: bool
    payload: NotificationPayload
