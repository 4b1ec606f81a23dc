"""
Stake ledger.

Test cases:
- Placing debits the balance, audits and bumps the option version
- One stake per user per bet
- Minimum stake and notable-stake message rules
- Changing up and down, withdrawing
- Stakes only move while voting
- Optional option version is enforced
- Conservation of balance plus active stakes
"""

import pytest

from jasb.errors import (
    BadRequestError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    VersionConflictError,
)
from jasb.models import AuditEvent
from jasb.schemas.feed import NotableStake
from jasb.services.feed_service import FeedService
from jasb.services.lookups import load_user


async def total_worth(l, db, slugs):
    total = 0
    for slug in slugs:
        user = await load_user(db, slug)
        total += user.balance + await l.accounts.staked(db, user)
    return total


def test_place_stake(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            alice = await l.user(db, "alice")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin)

            assert await l.stakes.place(db, alice, "game", "bet", "a", 250) == 750

            bet = await l.bets.get_bet(db, "game", "bet")
            stake = bet.stake_of(alice.id)
            assert stake.amount == 250
            assert stake.option_id == bet.option_by_slug("a").id
            assert bet.option_by_slug("a").version == 1
            assert bet.option_by_slug("a").total_staked == 250
            assert bet.version == 0

            entry = (await l.accounts.audit_log(db, alice))[-1]
            assert entry.event == AuditEvent.STAKE_COMMITTED
            assert entry.delta == -250
            assert entry.balance_after == 750
            assert entry.bet_id == bet.id
            assert entry.stake_amount == 250

    ledger.run(scenario)


def test_one_stake_per_bet(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            alice = await l.user(db, "alice")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin)
            await l.stakes.place(db, alice, "game", "bet", "a", 100)

            with pytest.raises(ConflictError):
                await l.stakes.place(db, await load_user(db, "alice"), "game", "bet", "a", 50)
            with pytest.raises(InvalidStateError):
                await l.stakes.place(db, await load_user(db, "alice"), "game", "bet", "b", 50)
            assert await l.balance("alice") == 900

    ledger.run(scenario)


def test_amount_and_message_rules(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            await l.user(db, "alice")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin)

            for amount in (0, -10):
                with pytest.raises(BadRequestError):
                    await l.stakes.place(
                        db, await load_user(db, "alice"), "game", "bet", "a", amount
                    )
            with pytest.raises(BadRequestError):
                await l.stakes.place(
                    db, await load_user(db, "alice"), "game", "bet", "a", 499, message="hi"
                )
            assert await l.balance("alice") == 1000

            alice = await load_user(db, "alice")
            await l.stakes.place(db, alice, "game", "bet", "a", 500, message="all in")

            items = await FeedService().get_bet_feed(db, "game", "bet")
            assert [item.kind for item in items] == ["NotableStake", "NewBet"]
            assert items[0].event["message"] == "all in"
            assert items[0].event["stake"] == 500
            assert items[0].event["user"] == {"id": "alice", "name": "Alice"}

            relayed = [e for e in l.relay.delivered if isinstance(e, NotableStake)]
            assert len(relayed) == 1
            assert relayed[0].option.id == "a"

    ledger.run(scenario)


def test_change_and_withdraw(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            alice = await l.user(db, "alice")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin)
            await l.stakes.place(db, alice, "game", "bet", "a", 100)

            assert await l.stakes.change(db, alice, "game", "bet", "a", 300) == 700
            assert await l.stakes.change(db, alice, "game", "bet", "a", 50) == 950
            assert await l.stakes.change(db, alice, "game", "bet", "a", 50) == 950

            entries = await l.accounts.audit_log(db, alice)
            changes = [e for e in entries if e.event == AuditEvent.STAKE_CHANGED]
            assert [e.delta for e in changes] == [-200, 250, 0]
            assert [e.stake_amount for e in changes] == [300, 50, 50]

            with pytest.raises(NotFoundError):
                await l.stakes.change(db, alice, "game", "bet", "b", 10)

            alice = await load_user(db, "alice")
            assert await l.stakes.withdraw(db, alice, "game", "bet", "a") == 1000
            bet = await l.bets.get_bet(db, "game", "bet")
            assert bet.stakes() == []
            assert bet.option_by_slug("a").version == 5

            with pytest.raises(NotFoundError):
                await l.stakes.withdraw(db, await load_user(db, "alice"), "game", "bet", "a")

            alice = await load_user(db, "alice")
            assert await l.accounts.reconstruct_balance(db, alice) == 1000

    ledger.run(scenario)


def test_stakes_frozen_once_locked(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            alice = await l.user(db, "alice")
            bob = await l.user(db, "bob")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin)
            await l.stakes.place(db, alice, "game", "bet", "a", 100)
            await l.bets.lock(db, admin, "game", "bet", 0)

            with pytest.raises(InvalidStateError):
                await l.stakes.place(db, bob, "game", "bet", "b", 100)
            with pytest.raises(InvalidStateError):
                await l.stakes.change(db, await load_user(db, "alice"), "game", "bet", "a", 10)
            with pytest.raises(InvalidStateError):
                await l.stakes.withdraw(db, await load_user(db, "alice"), "game", "bet", "a")

            assert await l.balance("alice") == 900
            assert await l.balance("bob") == 1000

    ledger.run(scenario)


def test_option_version_when_given(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            alice = await l.user(db, "alice")
            await l.user(db, "bob")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin)

            await l.stakes.place(db, alice, "game", "bet", "a", 100, expected_version=0)
            with pytest.raises(VersionConflictError):
                await l.stakes.place(
                    db, await load_user(db, "bob"), "game", "bet", "a", 100, expected_version=0
                )
            bob = await load_user(db, "bob")
            assert await l.stakes.place(db, bob, "game", "bet", "a", 100, expected_version=1) == 900

    ledger.run(scenario)


def test_staking_conserves_currency(ledger):
    async def scenario(l):
        users = ["alice", "bob", "carol"]
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            for slug in users:
                await l.user(db, slug)
            await l.setup_game(db, admin)
            await l.new_bet(db, admin, bet="one")
            await l.new_bet(db, admin, bet="two", options=("x", "y", "z"))

            before = await total_worth(l, db, users)
            await l.stakes.place(db, await load_user(db, "alice"), "game", "one", "a", 300)
            await l.stakes.place(db, await load_user(db, "bob"), "game", "one", "b", 1000)
            await l.stakes.place(db, await load_user(db, "carol"), "game", "two", "z", 40)
            await l.stakes.change(db, await load_user(db, "alice"), "game", "one", "a", 120)
            await l.stakes.withdraw(db, await load_user(db, "carol"), "game", "two", "z")
            await l.stakes.place(db, await load_user(db, "carol"), "game", "two", "x", 90)
            assert await total_worth(l, db, users) == before

    ledger.run(scenario)
