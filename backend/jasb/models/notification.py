"""Per-user notification database model."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Uuid

from jasb.database.base import Base
from jasb.models.base import UUIDMixin
from jasb.utils.time_utils import utc_now


class Notification(Base, UUIDMixin):
    """Something a user should be told about, e.g. a payout or refund."""

    __tablename__ = "notifications"

    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    payload = Column(JSON, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    happened = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_notifications_user_read", "user_id", "read"),
    )

    def __repr__(self) -> str:
        return f"<Notification {self.payload.get('type')} for {self.user_id}>"
