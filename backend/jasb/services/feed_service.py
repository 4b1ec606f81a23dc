"""Public feed reads."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.models import FeedItem
from jasb.services.lookups import load_bet, load_game

logger = logging.getLogger(__name__)


class FeedService:
    async def get_feed(self, db: AsyncSession, limit: int = 100) -> list[FeedItem]:
        result = await db.execute(
            select(FeedItem).order_by(FeedItem.happened.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def get_bet_feed(
        self, db: AsyncSession, game_slug: str, bet_slug: str
    ) -> list[FeedItem]:
        """Feed items about one bet, newest first."""
        game = await load_game(db, game_slug)
        bet = await load_bet(db, game, bet_slug)
        result = await db.execute(
            select(FeedItem)
            .where(FeedItem.game_id == game.id, FeedItem.bet_id == bet.id)
            .order_by(FeedItem.happened.desc())
        )
        return list(result.scalars().all())


feed_service = FeedService()
