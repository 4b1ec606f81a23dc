"""Games and lock moments."""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.database.session import in_transaction
from jasb.errors import BadRequestError, ConflictError
from jasb.models import Bet, BetProgress, Game, GameProgress, LockMoment, User
from jasb.services.auth_service import AuthService, auth_service
from jasb.services.lookups import load_game, load_lock_moment
from jasb.services.version_guard import version_guard

logger = logging.getLogger(__name__)


class GameService:
    """Admins manage games; bet managers manage a game's lock moments."""

    def __init__(self, auth: Optional[AuthService] = None):
        self.auth = auth or auth_service

    async def get_game(self, db: AsyncSession, slug: str) -> Game:
        return await load_game(db, slug)

    async def get_games(
        self, db: AsyncSession, progress: Optional[GameProgress] = None
    ) -> list[tuple[Game, int]]:
        """Games with their bet counts, optionally only those at ``progress``."""
        bet_counts = (
            select(Bet.game_id, func.count(Bet.id).label("bets"))
            .group_by(Bet.game_id)
            .subquery()
        )
        stmt = select(Game, func.coalesce(bet_counts.c.bets, 0)).outerjoin(
            bet_counts, bet_counts.c.game_id == Game.id
        )
        if progress is not None:
            stmt = stmt.where(Game.progress == progress)
        result = await db.execute(
            stmt.order_by(Game.order.is_(None), Game.order, Game.created)
        )
        return [(game, bets) for game, bets in result.all()]

    async def add_game(
        self,
        db: AsyncSession,
        actor: User,
        slug: str,
        name: str,
        progress: GameProgress = GameProgress.FUTURE,
        order: Optional[int] = None,
    ) -> Game:
        self.auth.require_admin(actor)
        async with in_transaction(db):
            existing = await db.execute(select(Game.id).where(Game.slug == slug))
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(f"Game {slug} already exists.")
            game = Game(slug=slug, name=name, progress=progress, order=order)
            db.add(game)
        logger.info(f"{actor.slug} added game {slug}")
        return game

    async def edit_game(
        self,
        db: AsyncSession,
        actor: User,
        slug: str,
        expected_version: int,
        name: Optional[str] = None,
        progress: Optional[GameProgress] = None,
        order: Optional[int] = None,
    ) -> Game:
        self.auth.require_admin(actor)
        async with in_transaction(db):
            game = await load_game(db, slug)
            await version_guard.claim(db, game, expected_version)
            if name is not None:
                game.name = name
            if progress is not None:
                game.progress = progress
            if order is not None:
                game.order = order
        logger.info(f"{actor.slug} edited game {slug} (v{game.version})")
        return game

    async def get_lock_moments(self, db: AsyncSession, game_slug: str) -> list[LockMoment]:
        game = await load_game(db, game_slug)
        result = await db.execute(
            select(LockMoment)
            .where(LockMoment.game_id == game.id)
            .order_by(LockMoment.order, LockMoment.slug)
        )
        return list(result.scalars().all())

    async def add_lock_moment(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        slug: str,
        name: str,
        order: int = 0,
    ) -> LockMoment:
        async with in_transaction(db):
            game = await load_game(db, game_slug)
            await self.auth.require_bet_manager(db, actor, game)
            existing = await db.execute(
                select(LockMoment.id).where(
                    LockMoment.game_id == game.id, LockMoment.slug == slug
                )
            )
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(f"Lock moment {slug} already exists.")
            lock_moment = LockMoment(
                game_id=game.id, game=game, slug=slug, name=name, order=order
            )
            db.add(lock_moment)
        logger.info(f"{actor.slug} added lock moment {game_slug}/{slug}")
        return lock_moment

    async def edit_lock_moment(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        slug: str,
        expected_version: int,
        name: Optional[str] = None,
        order: Optional[int] = None,
    ) -> LockMoment:
        async with in_transaction(db):
            game = await load_game(db, game_slug)
            await self.auth.require_bet_manager(db, actor, game)
            lock_moment = await load_lock_moment(db, game, slug)
            await version_guard.claim(db, lock_moment, expected_version)
            if name is not None:
                lock_moment.name = name
            if order is not None:
                lock_moment.order = order
        logger.info(f"{actor.slug} edited lock moment {game_slug}/{slug}")
        return lock_moment

    async def remove_lock_moment(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        slug: str,
        expected_version: int,
    ) -> None:
        async with in_transaction(db):
            game = await load_game(db, game_slug)
            await self.auth.require_bet_manager(db, actor, game)
            lock_moment = await load_lock_moment(db, game, slug)
            version_guard.check(lock_moment, expected_version)
            in_use = await db.execute(
                select(func.count(Bet.id)).where(Bet.lock_moment_id == lock_moment.id)
            )
            if in_use.scalar_one():
                raise BadRequestError(f"Bets still lock at {slug}.")
            await version_guard.claim(db, lock_moment, expected_version)
            await db.delete(lock_moment)
        logger.info(f"{actor.slug} removed lock moment {game_slug}/{slug}")

    async def lock_status(
        self, db: AsyncSession, game_slug: str
    ) -> list[tuple[LockMoment, list[Bet]]]:
        """Each lock moment of the game with the bets that lock at it."""
        lock_moments = await self.get_lock_moments(db, game_slug)
        ids = [lock_moment.id for lock_moment in lock_moments]
        result = await db.execute(
            select(Bet).where(Bet.lock_moment_id.in_(ids)).order_by(Bet.created)
        )
        bets = list(result.unique().scalars().all())
        return [
            (lock_moment, [bet for bet in bets if bet.lock_moment_id == lock_moment.id])
            for lock_moment in lock_moments
        ]

    async def lock_moment(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        slug: str,
        expected_version: int,
    ) -> list[Bet]:
        """Lock every voting bet at this moment together."""
        async with in_transaction(db):
            game = await load_game(db, game_slug)
            await self.auth.require_bet_manager(db, actor, game)
            lock_moment = await load_lock_moment(db, game, slug)
            await version_guard.claim(db, lock_moment, expected_version)
            result = await db.execute(
                select(Bet).where(
                    Bet.lock_moment_id == lock_moment.id,
                    Bet.progress == BetProgress.VOTING,
                )
            )
            bets = []
            for bet in result.unique().scalars().all():
                # Bets cancelled or locked since the select are left as they are
                if await version_guard.advance(
                    db, bet, BetProgress.VOTING, BetProgress.LOCKED
                ):
                    bets.append(bet)
        logger.info(f"{actor.slug} locked {len(bets)} bet(s) at {game_slug}/{slug}")
        return bets


game_service = GameService()
