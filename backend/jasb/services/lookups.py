"""Load-or-404 helpers shared by the services."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.errors import NotFoundError
from jasb.models import Bet, Game, LockMoment, Option, User


async def load_user(db: AsyncSession, slug: str) -> User:
    result = await db.execute(select(User).where(User.slug == slug))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(f"User {slug} not found")
    return user


async def load_user_by_id(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


async def load_game(db: AsyncSession, slug: str) -> Game:
    result = await db.execute(select(Game).where(Game.slug == slug))
    game = result.scalar_one_or_none()
    if game is None:
        raise NotFoundError(f"Game {slug} not found")
    return game


async def load_lock_moment(db: AsyncSession, game: Game, slug: str) -> LockMoment:
    result = await db.execute(
        select(LockMoment).where(LockMoment.game_id == game.id, LockMoment.slug == slug)
    )
    lock_moment = result.scalar_one_or_none()
    if lock_moment is None:
        raise NotFoundError(f"Lock moment {slug} not found in game {game.slug}")
    return lock_moment


async def load_bet(db: AsyncSession, game: Game, slug: str) -> Bet:
    """Load a bet with its options and stakes, overwriting any stale copy."""
    result = await db.execute(
        select(Bet)
        .where(Bet.game_id == game.id, Bet.slug == slug)
        .execution_options(populate_existing=True)
    )
    bet = result.unique().scalar_one_or_none()
    if bet is None:
        raise NotFoundError(f"Bet {slug} not found in game {game.slug}")
    return bet


def require_option(bet: Bet, slug: str) -> Option:
    option = bet.option_by_slug(slug)
    if option is None:
        raise NotFoundError(f"Option {slug} not found in bet {bet.slug}")
    return option
