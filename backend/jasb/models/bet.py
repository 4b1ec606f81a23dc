"""Bet, option and stake database models."""

from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from jasb.database.base import Base
from jasb.models.base import UUIDMixin, VersionedMixin, enum_column_type
from jasb.utils.time_utils import utc_now


class BetProgress(str, PyEnum):
    """Closed set of bet lifecycle states."""

    VOTING = "Voting"
    LOCKED = "Locked"
    COMPLETE = "Complete"
    CANCELLED = "Cancelled"

    @property
    def is_active(self) -> bool:
        """Stakes on active bets are still at risk."""
        return self in (BetProgress.VOTING, BetProgress.LOCKED)


class Bet(Base, UUIDMixin, VersionedMixin):
    """A wager on a discrete event with mutually exclusive options."""

    __tablename__ = "bets"

    game_id = Column(
        Uuid,
        ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lock_moment_id = Column(
        Uuid,
        ForeignKey("lock_moments.id"),
        nullable=False,
        index=True,
    )
    author_id = Column(Uuid, ForeignKey("users.id"), nullable=False)

    slug = Column(String(100), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    spoiler = Column(Boolean, nullable=False, default=False)

    progress = Column(
        enum_column_type(BetProgress, "bet_progress"),
        nullable=False,
        default=BetProgress.VOTING,
    )
    cancelled_reason = Column(Text, nullable=True)
    # Progress to restore on revert_cancel
    cancelled_from = Column(
        enum_column_type(BetProgress, "bet_progress_prior"), nullable=True
    )
    resolved = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    game = relationship("Game", lazy="joined")
    lock_moment = relationship("LockMoment", lazy="joined")
    author = relationship("User", lazy="joined")
    options = relationship(
        "Option",
        back_populates="bet",
        cascade="all, delete-orphan",
        order_by="Option.order",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("game_id", "slug", name="uq_bets_game_slug"),
    )

    def option_by_slug(self, slug: str) -> "Option | None":
        return next((o for o in self.options if o.slug == slug), None)

    def stakes(self) -> list["Stake"]:
        return [stake for option in self.options for stake in option.stakes]

    def stake_of(self, owner_id) -> "Stake | None":
        return next((s for s in self.stakes() if s.owner_id == owner_id), None)

    def __repr__(self) -> str:
        return f"<Bet {self.slug} {self.progress.value} v{self.version}>"


class Option(Base, UUIDMixin, VersionedMixin):
    """One possible outcome of a bet."""

    __tablename__ = "options"

    bet_id = Column(
        Uuid,
        ForeignKey("bets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    slug = Column(String(100), nullable=False)
    name = Column(String(200), nullable=False)
    image = Column(String(500), nullable=True)
    order = Column(Integer, nullable=False, default=0)
    won = Column(Boolean, nullable=False, default=False)

    bet = relationship("Bet", back_populates="options", lazy="raise")
    stakes = relationship(
        "Stake",
        back_populates="option",
        cascade="all, delete-orphan",
        order_by="Stake.placed_at",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("bet_id", "slug", name="uq_options_bet_slug"),
    )

    @property
    def total_staked(self) -> int:
        return sum(stake.amount for stake in self.stakes)

    def __repr__(self) -> str:
        return f"<Option {self.slug}{' (won)' if self.won else ''} v{self.version}>"


class Stake(Base, UUIDMixin):
    """A user's wager on one option. At most one per user per bet."""

    __tablename__ = "stakes"

    option_id = Column(
        Uuid,
        ForeignKey("options.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Denormalised so the one-option-per-bet rule is a table constraint
    bet_id = Column(
        Uuid,
        ForeignKey("bets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount = Column(Integer, nullable=False)
    message = Column(Text, nullable=True)
    placed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    refunded = Column(Boolean, nullable=False, default=False)

    option = relationship("Option", back_populates="stakes", lazy="raise")
    owner = relationship("User", lazy="joined")

    __table_args__ = (
        UniqueConstraint("bet_id", "owner_id", name="uq_stakes_bet_owner"),
        CheckConstraint("amount > 0", name="positive_amount"),
    )

    def __repr__(self) -> str:
        return f"<Stake {self.owner_id} {self.amount} on {self.option_id}>"
