"""Payouts, refunds and their exact reversal."""

import logging
from typing import Literal, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from jasb.errors import InvalidStateError
from jasb.models import AuditEntry, AuditEvent, Bet, Option, RefundReason, Stake
from jasb.schemas.feed import BetComplete, Highlighted, IdAndName, UserSummary
from jasb.schemas.notification import BetFinished, BetReverted, Refunded
from jasb.services.account_service import AccountService, account_service
from jasb.services.emitter import Emitter
from jasb.services.lookups import load_user_by_id

logger = logging.getLogger(__name__)


def bet_details(bet: Bet, option: Option) -> dict:
    """Identifiers and names every bet-related notification carries."""
    return {
        "game_id": bet.game.slug,
        "game_name": bet.game.name,
        "bet_id": bet.slug,
        "bet_name": bet.name,
        "option_id": option.slug,
        "option_name": option.name,
    }


def stake_context(bet: Bet, option: Option, stake: Stake) -> dict:
    return {
        "game_id": bet.game_id,
        "bet_id": bet.id,
        "option_id": option.id,
        "stake_amount": stake.amount,
    }


class ResolutionService:
    """
    Moves currency when a bet resolves, is cancelled, or either is undone.

    Reversals never recompute anything from the bet as it is now: they replay
    the audit entries written by the operation being undone, negated.
    """

    def __init__(self, accounts: Optional[AccountService] = None):
        self.accounts = accounts or account_service

    async def pay_out(
        self,
        db: AsyncSession,
        emitter: Emitter,
        bet: Bet,
        winners: set[UUID],
    ) -> BetComplete:
        """
        Split the whole pot between the winning stakes, pro rata.

        Each winner gets ``floor(total_pot * stake / winning_pot)``; the
        flooring remainder stays out of circulation. With no winning stakes the
        pot is forfeited.
        """
        refunded = sum(1 for stake in bet.stakes() if stake.refunded)
        if refunded:
            logger.warning(f"Bet {bet.slug}: {refunded} refunded stake(s), not paying out")
            raise InvalidStateError(f"Bet {bet.slug} holds refunded stakes.")

        total_pot = sum(stake.amount for stake in bet.stakes())
        winning_pot = sum(
            stake.amount
            for option in bet.options
            if option.id in winners
            for stake in option.stakes
        )

        payouts: list[tuple[Stake, int]] = []
        for option in bet.options:
            details = bet_details(bet, option)
            for stake in option.stakes:
                context = stake_context(bet, option, stake)
                if option.id in winners:
                    amount = total_pot * stake.amount // winning_pot
                    await self.accounts.credit(
                        db, emitter, stake.owner, amount, AuditEvent.PAYOUT, **context
                    )
                    await emitter.notify(
                        stake.owner_id,
                        BetFinished(**details, result="Win", amount=amount),
                    )
                    payouts.append((stake, amount))
                else:
                    await self.accounts.record(
                        db, emitter, stake.owner, AuditEvent.LOSS, **context
                    )
                    await emitter.notify(
                        stake.owner_id,
                        BetFinished(**details, result="Loss", amount=stake.amount),
                    )

        if winning_pot == 0:
            logger.info(f"Bet {bet.slug}: no winning stakes, pot of {total_pot} forfeited")
        else:
            logger.info(
                f"Bet {bet.slug}: paid {sum(a for _, a in payouts)} of {total_pot} "
                f"to {len(payouts)} winning stake(s)"
            )

        biggest = max((amount for _, amount in payouts), default=0)
        return BetComplete(
            game=IdAndName(id=bet.game.slug, name=bet.game.name),
            bet=IdAndName(id=bet.slug, name=bet.name),
            spoiler=bet.spoiler,
            winners=[
                IdAndName(id=option.slug, name=option.name)
                for option in bet.options
                if option.id in winners
            ],
            highlighted=Highlighted(
                winners=[
                    UserSummary(id=stake.owner.slug, name=stake.owner.name)
                    for stake, amount in payouts
                    if amount == biggest
                ],
                amount=biggest,
            ),
            total_return=total_pot,
            winning_stakes=len(payouts),
        )

    async def refund_all(self, db: AsyncSession, emitter: Emitter, bet: Bet) -> int:
        """Give every stake back, leaving the stakes in place marked refunded."""
        refunded = 0
        for option in bet.options:
            for stake in option.stakes:
                if stake.refunded:
                    continue
                await self._refund(db, emitter, bet, option, stake, RefundReason.BET_CANCELLED)
                stake.refunded = True
                refunded += stake.amount
        logger.info(f"Bet {bet.slug}: refunded {refunded} on cancellation")
        return refunded

    async def refund_option(
        self, db: AsyncSession, emitter: Emitter, bet: Bet, option: Option
    ) -> int:
        """Refund and drop every stake on an option that is being removed."""
        refunded = 0
        for stake in list(option.stakes):
            await self._refund(db, emitter, bet, option, stake, RefundReason.OPTION_REMOVED)
            option.stakes.remove(stake)
            refunded += stake.amount
        if refunded:
            logger.info(f"Bet {bet.slug}: refunded {refunded} from removed option {option.slug}")
        return refunded

    async def _refund(
        self,
        db: AsyncSession,
        emitter: Emitter,
        bet: Bet,
        option: Option,
        stake: Stake,
        reason: RefundReason,
    ) -> None:
        await self.accounts.credit(
            db,
            emitter,
            stake.owner,
            stake.amount,
            AuditEvent.REFUND,
            reason=reason.value,
            **stake_context(bet, option, stake),
        )
        await emitter.notify(
            stake.owner_id,
            Refunded(**bet_details(bet, option), reason=reason.value, amount=stake.amount),
        )

    async def reverse_payouts(self, db: AsyncSession, emitter: Emitter, bet: Bet) -> int:
        """Undo every payout and loss recorded for the bet's completion."""
        entries = await self.accounts.unreversed_entries(
            db, bet, [AuditEvent.PAYOUT, AuditEvent.LOSS]
        )
        taken = await self._reverse(db, emitter, bet, entries, "Complete")
        logger.info(f"Bet {bet.slug}: reverted completion, took back {taken}")
        return taken

    async def reverse_refunds(self, db: AsyncSession, emitter: Emitter, bet: Bet) -> int:
        """Charge again every refund made when the bet was cancelled."""
        entries = await self.accounts.unreversed_entries(
            db, bet, [AuditEvent.REFUND], reason=RefundReason.BET_CANCELLED.value
        )
        taken = await self._reverse(db, emitter, bet, entries, "Cancelled")
        for stake in bet.stakes():
            stake.refunded = False
        logger.info(f"Bet {bet.slug}: reverted cancellation, took back {taken}")
        return taken

    async def _reverse(
        self,
        db: AsyncSession,
        emitter: Emitter,
        bet: Bet,
        entries: list[AuditEntry],
        reverted: Literal["Complete", "Cancelled"],
    ) -> int:
        taken = 0
        options = {option.id: option for option in bet.options}
        for entry in entries:
            user = await load_user_by_id(db, entry.user_id)
            context = {
                "game_id": entry.game_id,
                "bet_id": entry.bet_id,
                "option_id": entry.option_id,
                "stake_amount": entry.stake_amount,
                "reason": entry.reason,
                "reverses_id": entry.id,
            }
            if entry.delta > 0:
                await self.accounts.debit(
                    db, emitter, user, entry.delta, AuditEvent.REVERT, bounded=False, **context
                )
            elif entry.delta < 0:
                await self.accounts.credit(
                    db, emitter, user, -entry.delta, AuditEvent.REVERT, **context
                )
            else:
                await self.accounts.record(db, emitter, user, AuditEvent.REVERT, **context)
            taken += entry.delta

            option = options.get(entry.option_id)
            if option is not None:
                await emitter.notify(
                    user.id,
                    BetReverted(
                        **bet_details(bet, option), reverted=reverted, amount=entry.delta
                    ),
                )
        return taken


resolution_service = ResolutionService()
