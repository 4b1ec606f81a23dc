"""Bet authoring, editing and lifecycle."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.errors import BadRequestError, ConflictError
from jasb.models import Bet, BetProgress, Option, Stake, User
from jasb.schemas.bet import NewOption, OptionEdit
from jasb.schemas.feed import IdAndName, NewBet
from jasb.services.auth_service import AuthService, auth_service
from jasb.services.bet_state import Transition, next_progress, require_option_edits
from jasb.services.emitter import Emitter
from jasb.services.lookups import (
    load_bet,
    load_game,
    load_lock_moment,
    load_user,
    require_option,
)
from jasb.services.resolution_service import ResolutionService, resolution_service
from jasb.services.version_guard import version_guard
from jasb.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2


def _check_slugs(slugs: list[str]) -> None:
    seen = set()
    for slug in slugs:
        if slug in seen:
            raise BadRequestError(f"Option {slug} is listed more than once.")
        seen.add(slug)


def _new_option(option: NewOption, index: int) -> Option:
    return Option(
        slug=option.id,
        name=option.name,
        image=option.image,
        order=index if option.order is None else option.order,
    )


class BetService:
    """
    Creates and edits bets and drives them through their lifecycle.

    Every lifecycle call claims the bet at the caller's version, checks the
    transition is legal, applies its money movements and returns the bet as
    stored afterwards.
    """

    def __init__(
        self,
        auth: Optional[AuthService] = None,
        resolution: Optional[ResolutionService] = None,
    ):
        self.auth = auth or auth_service
        self.resolution = resolution or resolution_service

    @property
    def collaborators(self):
        return self.resolution.accounts.collaborators

    async def get_bet(self, db: AsyncSession, game_slug: str, bet_slug: str) -> Bet:
        game = await load_game(db, game_slug)
        return await load_bet(db, game, bet_slug)

    async def get_bets(self, db: AsyncSession, game_slug: str) -> list[Bet]:
        game = await load_game(db, game_slug)
        result = await db.execute(
            select(Bet)
            .where(Bet.game_id == game.id)
            .order_by(Bet.created)
            .execution_options(populate_existing=True)
        )
        return list(result.unique().scalars().all())

    async def get_user_bets(self, db: AsyncSession, user_slug: str) -> list[Bet]:
        """Bets the user holds a stake on, newest first."""
        user = await load_user(db, user_slug)
        result = await db.execute(
            select(Bet)
            .where(
                select(Stake.id)
                .where(Stake.bet_id == Bet.id, Stake.owner_id == user.id)
                .exists()
            )
            .order_by(Bet.created.desc())
        )
        return list(result.unique().scalars().all())

    async def new_bet(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        name: str,
        lock_moment_slug: str,
        options: list[NewOption],
        description: str = "",
        spoiler: bool = False,
    ) -> Bet:
        async with self.collaborators.transaction(db) as emitter:
            game = await load_game(db, game_slug)
            await self.auth.require_bet_manager(db, actor, game)
            lock_moment = await load_lock_moment(db, game, lock_moment_slug)

            if len(options) < MIN_OPTIONS:
                raise BadRequestError(f"A bet needs at least {MIN_OPTIONS} options.")
            _check_slugs([option.id for option in options])

            existing = await db.execute(
                select(Bet.id).where(Bet.game_id == game.id, Bet.slug == bet_slug)
            )
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(f"Bet {bet_slug} already exists in {game_slug}.")

            bet = Bet(
                game_id=game.id,
                game=game,
                lock_moment_id=lock_moment.id,
                lock_moment=lock_moment,
                author_id=actor.id,
                author=actor,
                slug=bet_slug,
                name=name,
                description=description,
                spoiler=spoiler,
                options=[_new_option(option, i) for i, option in enumerate(options)],
            )
            db.add(bet)
            await db.flush()

            await emitter.publish(
                NewBet(
                    game=IdAndName(id=game.slug, name=game.name),
                    bet=IdAndName(id=bet.slug, name=bet.name),
                    spoiler=spoiler,
                ),
                game_id=game.id,
                bet_id=bet.id,
            )

        logger.info(f"{actor.slug} created bet {game_slug}/{bet_slug}")
        return await load_bet(db, game, bet_slug)

    async def edit_bet(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        expected_version: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        spoiler: Optional[bool] = None,
        lock_moment_slug: Optional[str] = None,
        remove_options: Optional[list[str]] = None,
        edit_options: Optional[list[OptionEdit]] = None,
        add_options: Optional[list[NewOption]] = None,
    ) -> Bet:
        """
        Edit a bet's details and options in one versioned write.

        Options can only change while voting. Removing an option refunds the
        stakes on it; edited options must match their own versions too.
        """
        remove_options = remove_options or []
        edit_options = edit_options or []
        add_options = add_options or []

        async with self.collaborators.transaction(db) as emitter:
            game = await load_game(db, game_slug)
            await self.auth.require_bet_manager(db, actor, game)
            bet = await load_bet(db, game, bet_slug)
            version_guard.check(bet, expected_version)

            if remove_options or edit_options or add_options:
                require_option_edits(bet)
            _check_slugs(remove_options)
            _check_slugs([edit.id for edit in edit_options])
            _check_slugs([option.id for option in add_options])

            removed = [require_option(bet, slug) for slug in remove_options]
            edited = [(require_option(bet, edit.id), edit) for edit in edit_options]
            for option, edit in edited:
                version_guard.check(option, edit.version)
            remaining = {o.slug for o in bet.options} - set(remove_options)
            for option in add_options:
                if option.id in remaining:
                    raise ConflictError(f"Option {option.id} already exists.")
            if (
                bet.progress == BetProgress.VOTING
                and len(remaining) + len(add_options) < MIN_OPTIONS
            ):
                raise BadRequestError(f"A bet needs at least {MIN_OPTIONS} options.")
            lock_moment = None
            if lock_moment_slug is not None:
                lock_moment = await load_lock_moment(db, game, lock_moment_slug)

            await version_guard.claim(db, bet, expected_version)

            if name is not None:
                bet.name = name
            if description is not None:
                bet.description = description
            if spoiler is not None:
                bet.spoiler = spoiler
            if lock_moment is not None:
                bet.lock_moment_id = lock_moment.id
                bet.lock_moment = lock_moment

            for option in removed:
                await self._remove_option(db, emitter, bet, option)
            for option, edit in edited:
                await version_guard.claim(db, option, edit.version)
                if edit.name is not None:
                    option.name = edit.name
                if edit.image is not None:
                    option.image = edit.image
                if edit.order is not None:
                    option.order = edit.order
            start = len(bet.options)
            for i, option in enumerate(add_options):
                bet.options.append(_new_option(option, start + i))

        logger.info(
            f"{actor.slug} edited bet {game_slug}/{bet_slug} "
            f"(-{len(removed)} ~{len(edited)} +{len(add_options)} options)"
        )
        return await load_bet(db, game, bet_slug)

    async def _remove_option(
        self, db: AsyncSession, emitter: Emitter, bet: Bet, option: Option
    ) -> None:
        await self.resolution.refund_option(db, emitter, bet, option)
        # Removed before the new options flush so their slugs may be reused
        bet.options.remove(option)
        await db.flush()

    async def lock(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        expected_version: int,
    ) -> Bet:
        return await self._transition(
            db, actor, game_slug, bet_slug, expected_version, Transition.LOCK
        )

    async def unlock(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        expected_version: int,
    ) -> Bet:
        return await self._transition(
            db, actor, game_slug, bet_slug, expected_version, Transition.UNLOCK
        )

    async def complete(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        expected_version: int,
        winners: list[str],
    ) -> Bet:
        """Resolve the bet in favour of ``winners`` and pay out."""
        return await self._transition(
            db,
            actor,
            game_slug,
            bet_slug,
            expected_version,
            Transition.COMPLETE,
            winners=winners,
        )

    async def revert_complete(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        expected_version: int,
    ) -> Bet:
        return await self._transition(
            db, actor, game_slug, bet_slug, expected_version, Transition.REVERT_COMPLETE
        )

    async def cancel(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        expected_version: int,
        reason: str,
    ) -> Bet:
        """Cancel the bet, refunding every stake."""
        return await self._transition(
            db,
            actor,
            game_slug,
            bet_slug,
            expected_version,
            Transition.CANCEL,
            reason=reason,
        )

    async def revert_cancel(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        expected_version: int,
    ) -> Bet:
        return await self._transition(
            db, actor, game_slug, bet_slug, expected_version, Transition.REVERT_CANCEL
        )

    async def _transition(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        expected_version: int,
        transition: Transition,
        winners: Optional[list[str]] = None,
        reason: Optional[str] = None,
    ) -> Bet:
        async with self.collaborators.transaction(db) as emitter:
            game = await load_game(db, game_slug)
            await self.auth.require_bet_manager(db, actor, game)
            bet = await load_bet(db, game, bet_slug)
            version_guard.check(bet, expected_version)
            before = bet.progress
            target = next_progress(before, transition, bet.cancelled_from)

            match transition:
                case Transition.COMPLETE:
                    if not winners:
                        raise BadRequestError("At least one winning option is needed.")
                    _check_slugs(winners)
                    winning = [require_option(bet, slug) for slug in winners]
                case Transition.CANCEL:
                    if not reason or not reason.strip():
                        raise BadRequestError("A reason for cancelling is needed.")

            await version_guard.claim(db, bet, expected_version)

            match transition:
                case Transition.LOCK | Transition.UNLOCK:
                    pass
                case Transition.COMPLETE:
                    for option in winning:
                        option.won = True
                        await version_guard.bump(db, option)
                    summary = await self.resolution.pay_out(
                        db, emitter, bet, {option.id for option in winning}
                    )
                    bet.resolved = utc_now()
                    await emitter.publish(summary, game_id=game.id, bet_id=bet.id)
                case Transition.REVERT_COMPLETE:
                    await self.resolution.reverse_payouts(db, emitter, bet)
                    for option in bet.options:
                        if option.won:
                            option.won = False
                            await version_guard.bump(db, option)
                    bet.resolved = None
                case Transition.CANCEL:
                    await self.resolution.refund_all(db, emitter, bet)
                    bet.cancelled_reason = reason
                    bet.cancelled_from = before
                    bet.resolved = utc_now()
                case Transition.REVERT_CANCEL:
                    await self.resolution.reverse_refunds(db, emitter, bet)
                    bet.cancelled_reason = None
                    bet.cancelled_from = None
                    bet.resolved = None

            bet.progress = target

        logger.info(
            f"{actor.slug}: {transition.value} {game_slug}/{bet_slug} "
            f"({before.value} -> {target.value})"
        )
        return await load_bet(db, game, bet_slug)


bet_service = BetService()
