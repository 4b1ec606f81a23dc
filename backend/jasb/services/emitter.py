"""
Audit, notification and feed emission.

An ``Emitter`` is created per transaction. Audit entries and the default
notification and feed rows are added to the same session, so they commit or
roll back together with the mutation that produced them. Feed events are also
kept on the emitter and handed to the optional external relay once the
transaction has committed.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable, Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from jasb.database.session import in_transaction
from jasb.models import AuditEntry, AuditEvent, FeedItem, Notification
from jasb.schemas.feed import FeedEvent
from jasb.schemas.notification import NotificationPayload

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    async def notify(self, user_id: UUID, payload: NotificationPayload) -> None: ...


class FeedSink(Protocol):
    async def publish(
        self,
        event: FeedEvent,
        game_id: Optional[UUID] = None,
        bet_id: Optional[UUID] = None,
    ) -> None: ...


class FeedRelay(Protocol):
    async def deliver(self, events: list[FeedEvent]) -> None: ...


class StoreNotificationSink:
    """Persists notifications in the caller's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(self, user_id: UUID, payload: NotificationPayload) -> None:
        self.db.add(
            Notification(user_id=user_id, payload=payload.model_dump(mode="json"))
        )


class StoreFeedSink:
    """Persists feed items in the caller's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def publish(
        self,
        event: FeedEvent,
        game_id: Optional[UUID] = None,
        bet_id: Optional[UUID] = None,
    ) -> None:
        self.db.add(
            FeedItem(
                kind=event.type,
                game_id=game_id,
                bet_id=bet_id,
                event=event.model_dump(mode="json"),
            )
        )


class Emitter:
    """Records the side effects of one ledger transaction."""

    def __init__(
        self,
        db: AsyncSession,
        notifications: NotificationSink,
        feed: FeedSink,
    ):
        self.db = db
        self.notifications = notifications
        self.feed = feed
        self.published: list[FeedEvent] = []

    def audit(
        self,
        user_id: UUID,
        event: AuditEvent,
        delta: int,
        balance_after: int,
        sequence: int,
        *,
        game_id: Optional[UUID] = None,
        bet_id: Optional[UUID] = None,
        option_id: Optional[UUID] = None,
        stake_amount: Optional[int] = None,
        reason: Optional[str] = None,
        details: Optional[dict] = None,
        reverses_id: Optional[UUID] = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            user_id=user_id,
            event=event,
            delta=delta,
            balance_after=balance_after,
            sequence=sequence,
            game_id=game_id,
            bet_id=bet_id,
            option_id=option_id,
            stake_amount=stake_amount,
            reason=reason,
            details=details,
            reverses_id=reverses_id,
        )
        self.db.add(entry)
        return entry

    async def notify(self, user_id: UUID, payload: NotificationPayload) -> None:
        await self.notifications.notify(user_id, payload)

    async def publish(
        self,
        event: FeedEvent,
        game_id: Optional[UUID] = None,
        bet_id: Optional[UUID] = None,
    ) -> None:
        await self.feed.publish(event, game_id=game_id, bet_id=bet_id)
        self.published.append(event)


class Collaborators:
    """
    Wiring of sinks and the external relay used by the services.

    Tests swap in recording sinks; the HTTP server installs a webhook relay at
    startup.
    """

    def __init__(
        self,
        notification_sink: Callable[[AsyncSession], NotificationSink] = StoreNotificationSink,
        feed_sink: Callable[[AsyncSession], FeedSink] = StoreFeedSink,
        relay: Optional[FeedRelay] = None,
    ):
        self.notification_sink = notification_sink
        self.feed_sink = feed_sink
        self.relay = relay

    def emitter(self, db: AsyncSession) -> Emitter:
        return Emitter(db, self.notification_sink(db), self.feed_sink(db))

    @asynccontextmanager
    async def transaction(self, db: AsyncSession) -> AsyncGenerator[Emitter, None]:
        """Run a mutation atomically, relaying its feed events after commit."""
        emitter = self.emitter(db)
        async with in_transaction(db):
            yield emitter
        await self.relay_events(emitter.published)

    async def relay_events(self, events: list[FeedEvent]) -> None:
        if self.relay is None or not events:
            return
        try:
            await self.relay.deliver(events)
        except Exception as e:
            logger.error(f"Feed relay failed for {len(events)} event(s): {e}")


default_collaborators = Collaborators()
