"""Game and lock moment database models."""

from enum import Enum as PyEnum

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from jasb.database.base import Base
from jasb.models.base import UUIDMixin, VersionedMixin, enum_column_type


class GameProgress(str, PyEnum):
    FUTURE = "Future"
    CURRENT = "Current"
    FINISHED = "Finished"


class Game(Base, UUIDMixin, VersionedMixin):
    """A game groups bets."""

    __tablename__ = "games"

    slug = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    progress = Column(
        enum_column_type(GameProgress, "game_progress"),
        nullable=False,
        default=GameProgress.FUTURE,
    )
    order = Column(Integer, nullable=True)

    lock_moments = relationship(
        "LockMoment",
        back_populates="game",
        cascade="all, delete-orphan",
        order_by="LockMoment.order",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Game {self.slug} v{self.version}>"


class LockMoment(Base, UUIDMixin, VersionedMixin):
    """A named point at which the bets referencing it lock together."""

    __tablename__ = "lock_moments"

    game_id = Column(
        Uuid,
        ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    slug = Column(String(100), nullable=False)
    name = Column(String(200), nullable=False)
    order = Column(Integer, nullable=False, default=0)

    game = relationship("Game", back_populates="lock_moments", lazy="joined")

    __table_args__ = (
        UniqueConstraint("game_id", "slug", name="uq_lock_moments_game_slug"),
    )

    def __repr__(self) -> str:
        return f"<LockMoment {self.slug} v{self.version}>"
