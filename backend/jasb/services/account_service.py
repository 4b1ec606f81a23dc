"""Account ledger: the only writer of user balances."""

import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlalchemy.orm.attributes import set_committed_value

from jasb.config import RulesConfig, get_settings
from jasb.errors import ConflictError, InsufficientFundsError, NotFoundError
from jasb.models import AuditEntry, AuditEvent, Bet, BetProgress, Stake, User
from jasb.schemas.notification import Gifted
from jasb.schemas.user import BankruptcyStats, DebtEntry, LeaderboardEntry
from jasb.services.emitter import Collaborators, Emitter, default_collaborators
from jasb.services.lookups import load_user

logger = logging.getLogger(__name__)

ACTIVE = [BetProgress.VOTING, BetProgress.LOCKED]


class AccountService:
    """
    Credits and debits balances with conditional atomic updates.

    Every balance change writes an audit entry carrying the exact delta, so the
    entries for a user always sum to their balance.
    """

    def __init__(
        self,
        rules: Optional[RulesConfig] = None,
        collaborators: Optional[Collaborators] = None,
    ):
        self._rules = rules
        self.collaborators = collaborators or default_collaborators

    @property
    def rules(self) -> RulesConfig:
        return self._rules or get_settings().rules

    async def adjust(
        self,
        db: AsyncSession,
        user: User,
        delta: int,
        minimum: Optional[int] = None,
    ) -> Optional[int]:
        """
        Add ``delta`` to the stored balance in one statement.

        With ``minimum`` the update only applies if the resulting balance is at
        least that much. The user's audit counter moves in the same write so
        the entry recorded for it gets the next sequence number. Returns the new
        balance, or None if nothing matched.
        """
        stmt = update(User).where(User.id == user.id)
        if minimum is not None:
            stmt = stmt.where(User.balance + delta >= minimum)
        result = await db.execute(
            stmt.values(
                balance=User.balance + delta, audit_count=User.audit_count + 1
            )
            .returning(User.balance, User.audit_count)
            .execution_options(synchronize_session=False)
        )
        row = result.one_or_none()
        if row is None:
            return None
        set_committed_value(user, "balance", row.balance)
        set_committed_value(user, "audit_count", row.audit_count)
        return row.balance

    def floor_for(self, checked_amount: int) -> int:
        """Lowest balance a stake of ``checked_amount`` may leave behind."""
        limit = self.rules.max_stake_while_in_debt
        return -limit if checked_amount <= limit else 0

    async def credit(
        self,
        db: AsyncSession,
        emitter: Emitter,
        user: User,
        amount: int,
        event: AuditEvent,
        **context,
    ) -> int:
        balance = await self.adjust(db, user, amount)
        if balance is None:
            raise NotFoundError(f"User {user.slug} not found")
        emitter.audit(user.id, event, amount, balance, user.audit_count, **context)
        return balance

    async def debit(
        self,
        db: AsyncSession,
        emitter: Emitter,
        user: User,
        amount: int,
        event: AuditEvent,
        checked_amount: Optional[int] = None,
        bounded: bool = True,
        **context,
    ) -> int:
        """
        Take ``amount`` from the user.

        Bounded debits respect the stake ceiling, judged on ``checked_amount``
        (the whole stake when only a top-up is being debited). Administrative
        reversals pass ``bounded=False``.
        """
        minimum = None
        if bounded:
            checked = amount if checked_amount is None else checked_amount
            minimum = self.floor_for(checked)

        balance = await self.adjust(db, user, -amount, minimum=minimum)
        if balance is None:
            if minimum is None:
                raise NotFoundError(f"User {user.slug} not found")
            logger.warning(
                f"Rejected debit of {amount} from {user.slug}: "
                f"balance would fall below {minimum}"
            )
            raise InsufficientFundsError(
                f"Not enough balance to stake {amount}."
            )
        emitter.audit(user.id, event, -amount, balance, user.audit_count, **context)
        return balance

    async def record(
        self,
        db: AsyncSession,
        emitter: Emitter,
        user: User,
        event: AuditEvent,
        **context,
    ) -> AuditEntry:
        """Audit an event that leaves the balance untouched."""
        balance = await self.adjust(db, user, 0)
        if balance is None:
            raise NotFoundError(f"User {user.slug} not found")
        return emitter.audit(user.id, event, 0, balance, user.audit_count, **context)

    async def open_account(
        self,
        db: AsyncSession,
        emitter: Emitter,
        slug: str,
        name: str,
        admin: bool = False,
    ) -> User:
        existing = await db.execute(select(User.id).where(User.slug == slug))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(f"User {slug} already exists")

        initial = self.rules.initial_balance
        user = User(
            slug=slug, name=name, balance=initial, admin=admin, audit_count=1
        )
        db.add(user)
        await db.flush()

        emitter.audit(user.id, AuditEvent.CREATE_ACCOUNT, initial, initial, 1)
        await emitter.notify(user.id, Gifted(amount=initial, reason="AccountCreated"))
        return user

    async def create_account(
        self,
        db: AsyncSession,
        slug: str,
        name: str,
        admin: bool = False,
    ) -> User:
        """Create a user with the starting balance."""
        async with self.collaborators.transaction(db) as emitter:
            user = await self.open_account(db, emitter, slug, name, admin=admin)
        logger.info(f"Created account {slug} with {user.balance}")
        return user

    async def bankrupt(self, db: AsyncSession, user: User) -> User:
        """
        Reset the balance to the starting amount.

        Open stakes stay where they are. The reset is a compare-and-swap on the
        balance that was read, so a concurrent debit makes this fail instead of
        being silently overwritten.
        """
        async with self.collaborators.transaction(db) as emitter:
            await db.refresh(user, attribute_names=["balance"])
            old = user.balance
            initial = self.rules.initial_balance
            result = await db.execute(
                update(User)
                .where(User.id == user.id, User.balance == old)
                .values(balance=initial, audit_count=User.audit_count + 1)
                .returning(User.audit_count)
                .execution_options(synchronize_session=False)
            )
            sequence = result.scalar_one_or_none()
            if sequence is None:
                logger.warning(f"Balance of {user.slug} changed during bankruptcy")
                raise ConflictError("Balance changed concurrently, try again.")
            set_committed_value(user, "balance", initial)
            set_committed_value(user, "audit_count", sequence)

            emitter.audit(
                user.id, AuditEvent.BANKRUPTCY, initial - old, initial, sequence
            )
            await emitter.notify(user.id, Gifted(amount=initial, reason="Bankruptcy"))

        logger.info(f"{user.slug} went bankrupt: {old} -> {initial}")
        return user

    async def bankruptcy_stats(self, db: AsyncSession, user: User) -> BankruptcyStats:
        locked = Bet.progress == BetProgress.LOCKED
        result = await db.execute(
            select(
                func.coalesce(func.sum(Stake.amount), 0),
                func.count(Stake.id),
                func.coalesce(func.sum(Stake.amount).filter(locked), 0),
                func.count(Stake.id).filter(locked),
            )
            .join(Bet, Bet.id == Stake.bet_id)
            .where(Stake.owner_id == user.id, Bet.progress.in_(ACTIVE))
        )
        amount, count, locked_amount, locked_count = result.one()
        return BankruptcyStats(
            amount_lost=amount,
            stakes_lost=count,
            locked_amount_lost=locked_amount,
            locked_stakes_lost=locked_count,
            balance_after=self.rules.initial_balance,
        )

    async def get_user(self, db: AsyncSession, slug: str) -> User:
        return await load_user(db, slug)

    async def staked(self, db: AsyncSession, user: User) -> int:
        """Total of the user's stakes on bets that are still open."""
        result = await db.execute(
            select(func.coalesce(func.sum(Stake.amount), 0))
            .join(Bet, Bet.id == Stake.bet_id)
            .where(Stake.owner_id == user.id, Bet.progress.in_(ACTIVE))
        )
        return result.scalar_one()

    async def leaderboard(
        self, db: AsyncSession, limit: Optional[int] = None
    ) -> list[LeaderboardEntry]:
        """Users ranked by net worth, only those ahead of the starting balance."""
        active_stakes = (
            select(Stake.owner_id, func.sum(Stake.amount).label("staked"))
            .join(Bet, Bet.id == Stake.bet_id)
            .where(Bet.progress.in_(ACTIVE))
            .group_by(Stake.owner_id)
            .subquery()
        )
        staked = func.coalesce(active_stakes.c.staked, 0)
        net_worth = User.balance + staked

        result = await db.execute(
            select(User, staked)
            .outerjoin(active_stakes, active_stakes.c.owner_id == User.id)
            .where(net_worth > self.rules.initial_balance)
            .order_by(net_worth.desc(), User.slug)
            .limit(limit or self.rules.leaderboard_size)
        )
        return [
            LeaderboardEntry(
                rank=rank,
                slug=user.slug,
                name=user.name,
                balance=user.balance,
                staked=user_staked,
                net_worth=user.balance + user_staked,
            )
            for rank, (user, user_staked) in enumerate(result.all(), start=1)
        ]

    async def debt_leaderboard(
        self, db: AsyncSession, limit: Optional[int] = None
    ) -> list[DebtEntry]:
        """Users with a negative balance, deepest in debt first."""
        result = await db.execute(
            select(User)
            .where(User.balance < 0)
            .order_by(User.balance, User.slug)
            .limit(limit or self.rules.leaderboard_size)
        )
        return [
            DebtEntry(rank=rank, slug=user.slug, name=user.name, debt=user.balance)
            for rank, user in enumerate(result.scalars().all(), start=1)
        ]

    async def audit_log(
        self, db: AsyncSession, user: User, limit: Optional[int] = None
    ) -> list[AuditEntry]:
        stmt = (
            select(AuditEntry)
            .where(AuditEntry.user_id == user.id)
            .order_by(AuditEntry.sequence)
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def reconstruct_balance(self, db: AsyncSession, user: User) -> int:
        """Replay the audit trail: the sum of every delta recorded for the user."""
        result = await db.execute(
            select(func.coalesce(func.sum(AuditEntry.delta), 0)).where(
                AuditEntry.user_id == user.id
            )
        )
        return result.scalar_one()

    async def unreversed_entries(
        self,
        db: AsyncSession,
        bet: Bet,
        events: list[AuditEvent],
        reason: Optional[str] = None,
    ) -> list[AuditEntry]:
        """Entries of the given kinds on ``bet`` that no revert has undone yet."""
        reverts = aliased(AuditEntry)
        stmt = (
            select(AuditEntry)
            .where(
                AuditEntry.bet_id == bet.id,
                AuditEntry.event.in_(events),
                ~select(reverts.id)
                .where(reverts.reverses_id == AuditEntry.id)
                .exists(),
            )
            .order_by(AuditEntry.happened, AuditEntry.sequence)
        )
        if reason is not None:
            stmt = stmt.where(AuditEntry.reason == reason)
        result = await db.execute(stmt)
        return list(result.scalars().all())


account_service = AccountService()
