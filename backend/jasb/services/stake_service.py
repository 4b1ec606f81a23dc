"""Stake ledger: placing, changing and withdrawing stakes."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from jasb.config import RulesConfig
from jasb.errors import BadRequestError, ConflictError, InvalidStateError, NotFoundError
from jasb.models import AuditEvent, Bet, Option, Stake, User
from jasb.schemas.feed import IdAndName, NotableStake, UserSummary
from jasb.services.account_service import AccountService, account_service
from jasb.services.bet_state import STAKEABLE, require_stakes_open
from jasb.services.emitter import Emitter
from jasb.services.lookups import load_bet, load_game, require_option
from jasb.services.resolution_service import stake_context
from jasb.services.version_guard import version_guard
from jasb.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class StakeService:
    """
    Stake mutations on voting bets.

    Each returns the actor's new balance. A user holds at most one stake per
    bet; moving to another option means withdrawing first.
    """

    def __init__(self, accounts: Optional[AccountService] = None):
        self.accounts = accounts or account_service

    @property
    def rules(self) -> RulesConfig:
        return self.accounts.rules

    def _validate(self, amount: int, message: Optional[str]) -> None:
        if amount < self.rules.min_stake:
            raise BadRequestError(f"Stakes must be at least {self.rules.min_stake}.")
        if message is not None and amount < self.rules.notable_stake:
            raise BadRequestError(
                f"Only stakes of {self.rules.notable_stake} or more may have a message."
            )

    async def _open_for_staking(
        self,
        db: AsyncSession,
        game_slug: str,
        bet_slug: str,
        option_slug: str,
        expected_version: Optional[int],
    ) -> tuple[Bet, Option]:
        game = await load_game(db, game_slug)
        bet = await load_bet(db, game, bet_slug)
        option = require_option(bet, option_slug)
        require_stakes_open(bet)
        if expected_version is not None:
            version_guard.check(option, expected_version)
        return bet, option

    async def _commit_to(
        self,
        db: AsyncSession,
        bet: Bet,
        option: Option,
        expected_version: Optional[int],
    ) -> None:
        await version_guard.pin(db, bet, STAKEABLE)
        if expected_version is None:
            await version_guard.bump(db, option)
        else:
            await version_guard.claim(db, option, expected_version)

    async def _announce(
        self,
        emitter: Emitter,
        actor: User,
        bet: Bet,
        option: Option,
        amount: int,
        message: Optional[str],
    ) -> None:
        if message is None:
            return
        await emitter.publish(
            NotableStake(
                game=IdAndName(id=bet.game.slug, name=bet.game.name),
                bet=IdAndName(id=bet.slug, name=bet.name),
                spoiler=bet.spoiler,
                option=IdAndName(id=option.slug, name=option.name),
                user=UserSummary(id=actor.slug, name=actor.name),
                message=message,
                stake=amount,
            ),
            game_id=bet.game_id,
            bet_id=bet.id,
        )

    async def place(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        option_slug: str,
        amount: int,
        message: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> int:
        message = message or None
        async with self.accounts.collaborators.transaction(db) as emitter:
            bet, option = await self._open_for_staking(
                db, game_slug, bet_slug, option_slug, expected_version
            )
            self._validate(amount, message)
            existing = bet.stake_of(actor.id)
            if existing is not None:
                if existing.option_id == option.id:
                    raise ConflictError("You already have a stake on this option.")
                raise InvalidStateError("You already have a stake on another option.")

            await self._commit_to(db, bet, option, expected_version)
            stake = Stake(
                bet_id=bet.id,
                owner_id=actor.id,
                owner=actor,
                amount=amount,
                message=message,
            )
            balance = await self.accounts.debit(
                db,
                emitter,
                actor,
                amount,
                AuditEvent.STAKE_COMMITTED,
                **stake_context(bet, option, stake),
            )
            option.stakes.append(stake)
            await self._announce(emitter, actor, bet, option, amount, message)

        logger.info(f"{actor.slug} staked {amount} on {bet.slug}/{option.slug}")
        return balance

    async def change(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        option_slug: str,
        amount: int,
        message: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> int:
        message = message or None
        async with self.accounts.collaborators.transaction(db) as emitter:
            bet, option = await self._open_for_staking(
                db, game_slug, bet_slug, option_slug, expected_version
            )
            stake = bet.stake_of(actor.id)
            if stake is None or stake.option_id != option.id:
                raise NotFoundError("You have no stake on this option.")
            self._validate(amount, message)

            await self._commit_to(db, bet, option, expected_version)
            delta = amount - stake.amount
            context = stake_context(bet, option, stake)
            context["stake_amount"] = amount
            if delta > 0:
                balance = await self.accounts.debit(
                    db,
                    emitter,
                    actor,
                    delta,
                    AuditEvent.STAKE_CHANGED,
                    checked_amount=amount,
                    **context,
                )
            elif delta < 0:
                balance = await self.accounts.credit(
                    db, emitter, actor, -delta, AuditEvent.STAKE_CHANGED, **context
                )
            else:
                entry = await self.accounts.record(
                    db, emitter, actor, AuditEvent.STAKE_CHANGED, **context
                )
                balance = entry.balance_after

            stake.amount = amount
            stake.message = message
            stake.placed_at = utc_now()
            await self._announce(emitter, actor, bet, option, amount, message)

        logger.info(f"{actor.slug} changed stake on {bet.slug}/{option.slug} by {delta:+d}")
        return balance

    async def withdraw(
        self,
        db: AsyncSession,
        actor: User,
        game_slug: str,
        bet_slug: str,
        option_slug: str,
        expected_version: Optional[int] = None,
    ) -> int:
        async with self.accounts.collaborators.transaction(db) as emitter:
            bet, option = await self._open_for_staking(
                db, game_slug, bet_slug, option_slug, expected_version
            )
            stake = bet.stake_of(actor.id)
            if stake is None or stake.option_id != option.id:
                raise NotFoundError("You have no stake on this option.")

            await self._commit_to(db, bet, option, expected_version)
            balance = await self.accounts.credit(
                db,
                emitter,
                actor,
                stake.amount,
                AuditEvent.STAKE_WITHDRAWN,
                **stake_context(bet, option, stake),
            )
            option.stakes.remove(stake)

        logger.info(f"{actor.slug} withdrew {stake.amount} from {bet.slug}/{option.slug}")
        return balance


stake_service = StakeService()
