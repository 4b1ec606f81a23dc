"""Append-only audit trail of balance-affecting events."""

from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)

from jasb.database.base import Base
from jasb.models.base import UUIDMixin, enum_column_type
from jasb.utils.time_utils import utc_now


class AuditEvent(str, PyEnum):
    CREATE_ACCOUNT = "CreateAccount"
    BANKRUPTCY = "Bankruptcy"
    STAKE_COMMITTED = "StakeCommitted"
    STAKE_CHANGED = "StakeChanged"
    STAKE_WITHDRAWN = "StakeWithdrawn"
    REFUND = "Refund"
    PAYOUT = "Payout"
    LOSS = "Loss"
    REVERT = "Revert"


class RefundReason(str, PyEnum):
    OPTION_REMOVED = "OptionRemoved"
    BET_CANCELLED = "BetCancelled"


class AuditEntry(Base, UUIDMixin):
    """
    One balance-affecting event for one user.

    ``delta`` is the exact amount moved, so summing a user's deltas reproduces
    their balance and a revert can undo precisely what was done.
    """

    __tablename__ = "audit_log"

    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event = Column(enum_column_type(AuditEvent, "audit_event"), nullable=False)
    delta = Column(Integer, nullable=False, default=0)
    balance_after = Column(Integer, nullable=False)
    # Position in the user's trail; entries of one transaction share a timestamp
    sequence = Column(Integer, nullable=False)

    # Context; plain ids so entries outlive removed options
    game_id = Column(Uuid, nullable=True)
    bet_id = Column(Uuid, nullable=True, index=True)
    option_id = Column(Uuid, nullable=True)
    stake_amount = Column(Integer, nullable=True)
    reason = Column(String(50), nullable=True)
    details = Column(JSON, nullable=True)

    reverses_id = Column(Uuid, ForeignKey("audit_log.id"), nullable=True, unique=True)

    happened = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_audit_log_user_happened", "user_id", "happened"),
        UniqueConstraint("user_id", "sequence", name="uq_audit_log_user_sequence"),
    )

    def __repr__(self) -> str:
        return f"<AuditEntry {self.event.value} {self.delta:+d} for {self.user_id}>"
