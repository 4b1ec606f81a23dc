"""
Account ledger.

Test cases:
- Account creation grants the starting balance with audit and notification
- Debt ceiling: small stakes may dip into debt, nothing goes further
- A rejected debit leaves the balance untouched
- Bankruptcy resets the balance without touching stakes
- Audit entries reconstruct every balance exactly
- Leaderboard ranks by net worth
- Debt leaderboard ranks the deepest debts first
- Audit entries are numbered per user in the order they were written
"""

import pytest

from jasb.errors import ConflictError, InsufficientFundsError
from jasb.models import AuditEvent
from jasb.services.lookups import load_user
from jasb.services.notification_service import NotificationService


def test_create_account(ledger):
    async def scenario(l):
        async with l.session() as db:
            user = await l.user(db, "alice")
            assert user.balance == 1000

            entries = await l.accounts.audit_log(db, user)
            assert [e.event for e in entries] == [AuditEvent.CREATE_ACCOUNT]
            assert entries[0].delta == 1000
            assert entries[0].balance_after == 1000

            notifications = await NotificationService().get_notifications(db, user)
            assert [n.payload for n in notifications] == [
                {"type": "Gifted", "amount": 1000, "reason": "AccountCreated"}
            ]

            with pytest.raises(ConflictError):
                await l.user(db, "alice")

    ledger.run(scenario)


def test_debt_ceiling(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            await l.user(db, "bob")
            await l.setup_game(db, admin)
            for slug in ("one", "two", "three", "four"):
                await l.new_bet(db, admin, bet=slug)

            bob = await load_user(db, "bob")
            assert await l.stakes.place(db, bob, "game", "one", "a", 1000) == 0

            # Too big to stake while it would leave a debt
            with pytest.raises(InsufficientFundsError) as excinfo:
                await l.stakes.place(db, await load_user(db, "bob"), "game", "two", "a", 150)
            assert excinfo.value.status_code == 400
            assert await l.balance("bob") == 0

            bob = await load_user(db, "bob")
            assert await l.stakes.place(db, bob, "game", "two", "a", 100) == -100

            # Small, but the debt would exceed the ceiling
            with pytest.raises(InsufficientFundsError):
                await l.stakes.place(db, await load_user(db, "bob"), "game", "three", "a", 1)
            assert await l.balance("bob") == -100

            bob = await load_user(db, "bob")
            entries = await l.accounts.audit_log(db, bob)
            assert [e.event for e in entries] == [
                AuditEvent.CREATE_ACCOUNT,
                AuditEvent.STAKE_COMMITTED,
                AuditEvent.STAKE_COMMITTED,
            ]
            assert await l.accounts.reconstruct_balance(db, bob) == -100

    ledger.run(scenario)


def test_raising_a_stake_is_judged_on_the_whole_stake(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            await l.user(db, "carol")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin, bet="one")
            await l.new_bet(db, admin, bet="two")

            carol = await load_user(db, "carol")
            await l.stakes.place(db, carol, "game", "one", "a", 950)
            await l.stakes.place(db, carol, "game", "two", "a", 50)
            assert await l.balance("carol") == 0

            # Only 60 more, but the stake would become 110
            with pytest.raises(InsufficientFundsError):
                await l.stakes.change(db, await load_user(db, "carol"), "game", "two", "a", 110)
            assert await l.balance("carol") == 0

            balance = await l.stakes.change(
                db, await load_user(db, "carol"), "game", "two", "a", 100
            )
            assert balance == -50

    ledger.run(scenario)


def test_bankruptcy(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            dave = await l.user(db, "dave")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin, bet="open")
            await l.new_bet(db, admin, bet="shut")
            await l.stakes.place(db, dave, "game", "open", "a", 300)
            await l.stakes.place(db, dave, "game", "shut", "b", 200)
            await l.bets.lock(db, admin, "game", "shut", 0)

            stats = await l.accounts.bankruptcy_stats(db, dave)
            assert stats.amount_lost == 500
            assert stats.stakes_lost == 2
            assert stats.locked_amount_lost == 200
            assert stats.locked_stakes_lost == 1
            assert stats.balance_after == 1000

            dave = await l.accounts.bankrupt(db, dave)
            assert dave.balance == 1000
            assert await l.balance("dave") == 1000

            # Stakes are not withdrawn
            bet = await l.bets.get_bet(db, "game", "open")
            assert bet.stake_of(dave.id).amount == 300

            entries = await l.accounts.audit_log(db, dave)
            assert entries[-1].event == AuditEvent.BANKRUPTCY
            assert entries[-1].delta == 500
            assert await l.accounts.reconstruct_balance(db, dave) == 1000

            notifications = await NotificationService().get_notifications(db, dave)
            assert {"type": "Gifted", "amount": 1000, "reason": "Bankruptcy"} in [
                n.payload for n in notifications
            ]

    ledger.run(scenario)


def test_leaderboard_ranks_by_net_worth(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            winner = await l.user(db, "winner")
            loser = await l.user(db, "loser")
            await l.user(db, "idle")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin, bet="first")
            await l.new_bet(db, admin, bet="second")

            await l.stakes.place(db, winner, "game", "first", "a", 200)
            await l.stakes.place(db, loser, "game", "first", "b", 200)
            await l.bets.lock(db, admin, "game", "first", 0)
            await l.bets.complete(db, admin, "game", "first", 1, ["a"])

            # Open stakes count towards net worth
            await l.stakes.place(db, await load_user(db, "winner"), "game", "second", "a", 100)

            board = await l.accounts.leaderboard(db)
            assert [(e.rank, e.slug, e.net_worth) for e in board] == [(1, "winner", 1200)]
            assert board[0].balance == 1100
            assert board[0].staked == 100

    ledger.run(scenario)


def test_debt_leaderboard(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            for slug in ("deep", "shallow", "solvent"):
                await l.user(db, slug)
            await l.setup_game(db, admin)
            for slug in ("one", "two"):
                await l.new_bet(db, admin, bet=slug)

            deep = await load_user(db, "deep")
            await l.stakes.place(db, deep, "game", "one", "a", 1000)
            await l.stakes.place(db, await load_user(db, "deep"), "game", "two", "a", 100)
            shallow = await load_user(db, "shallow")
            await l.stakes.place(db, shallow, "game", "one", "b", 1000)
            await l.stakes.place(db, await load_user(db, "shallow"), "game", "two", "b", 40)

            board = await l.accounts.debt_leaderboard(db)
            assert [(e.rank, e.slug, e.debt) for e in board] == [
                (1, "deep", -100),
                (2, "shallow", -40),
            ]
            assert [e.slug for e in await l.accounts.debt_leaderboard(db, limit=1)] == [
                "deep"
            ]

    ledger.run(scenario)


def test_audit_entries_are_numbered_in_write_order(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await setup_game_with_bet(l, db)
            erin = await l.user(db, "erin")
            await l.stakes.place(db, erin, "game", "bet", "a", 100)
            await l.stakes.change(db, await load_user(db, "erin"), "game", "bet", "a", 250)
            await l.bets.cancel(db, admin, "game", "bet", 0, "Rained off")
            await l.bets.revert_cancel(db, admin, "game", "bet", 1)

            erin = await load_user(db, "erin")
            entries = await l.accounts.audit_log(db, erin)
            assert [e.sequence for e in entries] == [1, 2, 3, 4, 5]
            assert [e.event for e in entries] == [
                AuditEvent.CREATE_ACCOUNT,
                AuditEvent.STAKE_COMMITTED,
                AuditEvent.STAKE_CHANGED,
                AuditEvent.REFUND,
                AuditEvent.REVERT,
            ]
            balance = 0
            for entry in entries:
                balance += entry.delta
                assert entry.balance_after == balance
            assert erin.audit_count == 5

    ledger.run(scenario)


async def setup_game_with_bet(l, db):
    admin = await l.user(db, "admin", admin=True)
    await l.setup_game(db, admin)
    await l.new_bet(db, admin)
    return admin
