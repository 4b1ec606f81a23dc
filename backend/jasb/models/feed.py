"""Public feed database model."""

from sqlalchemy import JSON, Column, DateTime, Index, String, Uuid

from jasb.database.base import Base
from jasb.models.base import UUIDMixin
from jasb.utils.time_utils import utc_now


class FeedItem(Base, UUIDMixin):
    """A public bet-lifecycle event (new bet, completion, notable stake)."""

    __tablename__ = "feed"

    kind = Column(String(20), nullable=False)
    game_id = Column(Uuid, nullable=True)
    bet_id = Column(Uuid, nullable=True)
    event = Column(JSON, nullable=False)
    happened = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_feed_happened", "happened"),
        Index("idx_feed_game_bet", "game_id", "bet_id"),
    )

    def __repr__(self) -> str:
        return f"<FeedItem {self.kind} at {self.happened}>"
