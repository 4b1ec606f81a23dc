"""User, session and permission database models."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from jasb.database.base import Base
from jasb.models.base import UUIDMixin
from jasb.utils.time_utils import utc_now


class User(Base, UUIDMixin):
    """Community member holding a balance of the virtual currency."""

    __tablename__ = "users"

    slug = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)

    # May go negative (debt); only the account ledger writes it
    balance = Column(Integer, nullable=False, default=0)
    # Bumped with every balance write; numbers the user's audit entries
    audit_count = Column(Integer, nullable=False, default=0)

    admin = Column(Boolean, nullable=False, default=False)
    created = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    # Relationships
    sessions = relationship(
        "UserSession",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="raise",
    )
    permissions = relationship(
        "Permission",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<User {self.slug} ({self.balance})>"


class UserSession(Base, UUIDMixin):
    """Login session; the token is the session proof callers present."""

    __tablename__ = "sessions"

    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = Column(String(128), unique=True, nullable=False)
    started = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    user = relationship("User", back_populates="sessions", lazy="joined")

    def __repr__(self) -> str:
        return f"<UserSession {self.user_id} since {self.started}>"


class Permission(Base, UUIDMixin):
    """Per-game moderation rights."""

    __tablename__ = "permissions"

    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    game_id = Column(
        Uuid,
        ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    manage_bets = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="permissions", lazy="raise")

    __table_args__ = (
        UniqueConstraint("user_id", "game_id", name="uq_permissions_user_game"),
    )
