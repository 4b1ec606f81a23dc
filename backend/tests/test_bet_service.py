"""
Bets, games and lock moments.

Test cases:
- New bets need two uniquely named options and announce themselves
- Only admins and game bet managers may manage bets
- Editing details and options, refunds for removed options
- Option changes only while voting; option versions are enforced
- Lock moments lock their voting bets together
- Game listings filter by progress and count bets
"""

import pytest

from jasb.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    VersionConflictError,
)
from jasb.models import AuditEvent, BetProgress, GameProgress
from jasb.schemas.bet import NewOption, OptionEdit
from jasb.schemas.feed import NewBet
from jasb.services.lookups import load_user
from jasb.services.notification_service import NotificationService


def test_new_bet(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            await l.setup_game(db, admin)
            bet = await l.new_bet(db, admin, options=("yes", "no"))

            assert bet.progress == BetProgress.VOTING
            assert bet.version == 0
            assert [o.slug for o in bet.options] == ["yes", "no"]
            assert bet.author.slug == "admin"
            assert bet.lock_moment.slug == "start"
            assert [e.bet.id for e in l.relay.delivered if isinstance(e, NewBet)] == ["bet"]

            with pytest.raises(ConflictError):
                await l.new_bet(db, await load_user(db, "admin"))
            with pytest.raises(BadRequestError):
                await l.new_bet(db, await load_user(db, "admin"), bet="single", options=("a",))
            with pytest.raises(BadRequestError):
                await l.new_bet(db, await load_user(db, "admin"), bet="twice", options=("a", "a"))
            with pytest.raises(NotFoundError):
                await l.new_bet(db, await load_user(db, "admin"), bet="other", lock_moment="nope")

            assert [b.slug for b in await l.bets.get_bets(db, "game")] == ["bet"]

    ledger.run(scenario)


def test_bet_management_permission(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            await l.user(db, "mod")
            await l.setup_game(db, admin)

            with pytest.raises(ForbiddenError) as excinfo:
                await l.new_bet(db, await load_user(db, "mod"))
            assert excinfo.value.status_code == 403

            with pytest.raises(ForbiddenError):
                await l.auth.set_permission(db, await load_user(db, "mod"), "mod", "game", True)

            admin = await load_user(db, "admin")
            await l.auth.set_permission(db, admin, "mod", "game", True)
            mod = await load_user(db, "mod")
            bet = await l.new_bet(db, mod)
            assert bet.author.slug == "mod"
            await l.bets.lock(db, mod, "game", "bet", 0)

            await l.auth.set_permission(db, admin, "mod", "game", False)
            with pytest.raises(ForbiddenError):
                await l.bets.unlock(db, await load_user(db, "mod"), "game", "bet", 1)

    ledger.run(scenario)


def test_edit_bet_details(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            await l.setup_game(db, admin)
            await l.games.add_lock_moment(db, admin, "game", "end", "End", order=1)
            await l.new_bet(db, admin)

            bet = await l.bets.edit_bet(
                db,
                admin,
                "game",
                "bet",
                0,
                name="Better",
                description="Who wins?",
                spoiler=True,
                lock_moment_slug="end",
            )
            assert bet.version == 1
            assert bet.name == "Better"
            assert bet.description == "Who wins?"
            assert bet.spoiler
            assert bet.lock_moment.slug == "end"

    ledger.run(scenario)


def test_removing_an_option_refunds_it(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            alice = await l.user(db, "alice")
            bob = await l.user(db, "bob")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin, options=("a", "b", "c"))
            await l.stakes.place(db, alice, "game", "bet", "c", 70)
            await l.stakes.place(db, bob, "game", "bet", "a", 30)

            bet = await l.bets.edit_bet(
                db,
                admin,
                "game",
                "bet",
                0,
                remove_options=["c"],
                add_options=[NewOption(id="d", name="D")],
            )
            assert [o.slug for o in bet.options] == ["a", "b", "d"]
            assert bet.stake_of(alice.id) is None
            assert bet.stake_of(bob.id).amount == 30
            assert await l.balance("alice") == 1000
            assert await l.balance("bob") == 970

            refund = (await l.accounts.audit_log(db, alice))[-1]
            assert refund.event == AuditEvent.REFUND
            assert refund.reason == "OptionRemoved"

            note = (await NotificationService().get_notifications(db, alice))[0].payload
            assert note["type"] == "Refunded"
            assert note["reason"] == "OptionRemoved"
            assert note["option_id"] == "c"
            assert note["amount"] == 70

            with pytest.raises(BadRequestError):
                await l.bets.edit_bet(
                    db, await load_user(db, "admin"), "game", "bet", 1, remove_options=["a", "b"]
                )

    ledger.run(scenario)


def test_option_edits(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            alice = await l.user(db, "alice")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin)
            await l.stakes.place(db, alice, "game", "bet", "a", 10)

            with pytest.raises(VersionConflictError):
                await l.bets.edit_bet(
                    db, admin, "game", "bet", 0, edit_options=[OptionEdit(id="a", version=0, name="Stale")]
                )

            bet = await l.bets.edit_bet(
                db,
                await load_user(db, "admin"),
                "game",
                "bet",
                0,
                edit_options=[OptionEdit(id="a", version=1, name="Fresh", image="a.png")],
            )
            option = bet.option_by_slug("a")
            assert option.name == "Fresh"
            assert option.image == "a.png"
            assert option.version == 2

            with pytest.raises(ConflictError):
                await l.bets.edit_bet(
                    db,
                    await load_user(db, "admin"),
                    "game",
                    "bet",
                    1,
                    add_options=[NewOption(id="b", name="B again")],
                )

            admin = await load_user(db, "admin")
            await l.bets.lock(db, admin, "game", "bet", 1)
            with pytest.raises(InvalidStateError):
                await l.bets.edit_bet(
                    db, admin, "game", "bet", 2, add_options=[NewOption(id="c", name="C")]
                )
            # Details can still change once locked
            bet = await l.bets.edit_bet(db, await load_user(db, "admin"), "game", "bet", 2, name="Locked in")
            assert bet.name == "Locked in"

    ledger.run(scenario)


def test_lock_moment_locks_voting_bets(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            await l.setup_game(db, admin)
            await l.games.add_lock_moment(db, admin, "game", "later", "Later", order=1)
            await l.new_bet(db, admin, bet="first")
            await l.new_bet(db, admin, bet="second")
            await l.new_bet(db, admin, bet="elsewhere", lock_moment="later")
            await l.bets.cancel(db, admin, "game", "second", 0, "Void")

            locked = await l.games.lock_moment(db, admin, "game", "start", 0)
            assert [b.slug for b in locked] == ["first"]

            status = dict(
                (lm.slug, {b.slug: b.progress for b in bets})
                for lm, bets in await l.games.lock_status(db, "game")
            )
            assert status["start"] == {
                "first": BetProgress.LOCKED,
                "second": BetProgress.CANCELLED,
            }
            assert status["later"] == {"elsewhere": BetProgress.VOTING}

            first = await l.bets.get_bet(db, "game", "first")
            assert first.version == 1

    ledger.run(scenario)


def test_games_and_lock_moments(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            user = await l.user(db, "user")

            with pytest.raises(ForbiddenError):
                await l.games.add_game(db, user, "game", "Game")

            game = await l.games.add_game(db, admin, "game", "Game", order=2)
            assert game.version == 0
            with pytest.raises(ConflictError):
                await l.games.add_game(db, await load_user(db, "admin"), "game", "Again")

            admin = await load_user(db, "admin")
            game = await l.games.edit_game(db, admin, "game", 0, name="Renamed")
            assert game.name == "Renamed"
            assert game.version == 1

            await l.games.add_lock_moment(db, admin, "game", "start", "Start")
            lock_moment = await l.games.edit_lock_moment(db, admin, "game", "start", 0, name="Kick-off")
            assert lock_moment.name == "Kick-off"
            await l.new_bet(db, admin)

            with pytest.raises(BadRequestError):
                await l.games.remove_lock_moment(db, admin, "game", "start", 1)

            admin = await load_user(db, "admin")
            await l.games.add_lock_moment(db, admin, "game", "unused", "Unused")
            await l.games.remove_lock_moment(db, admin, "game", "unused", 0)
            assert [lm.slug for lm in await l.games.get_lock_moments(db, "game")] == ["start"]

    ledger.run(scenario)


def test_user_bets(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            alice = await l.user(db, "alice")
            await l.setup_game(db, admin)
            await l.new_bet(db, admin, bet="one")
            await l.new_bet(db, admin, bet="two")
            await l.stakes.place(db, alice, "game", "two", "a", 10)

            assert [b.slug for b in await l.bets.get_user_bets(db, "alice")] == ["two"]
            assert await l.bets.get_user_bets(db, "admin") == []

    ledger.run(scenario)


def test_game_listing(ledger):
    async def scenario(l):
        async with l.session() as db:
            admin = await l.user(db, "admin", admin=True)
            await l.setup_game(db, admin, game="busy")
            await l.new_bet(db, admin, bet="one", game="busy")
            await l.new_bet(db, admin, bet="two", game="busy")
            await l.games.add_game(db, admin, "done", "Done", progress=GameProgress.FINISHED)
            await l.games.add_game(db, admin, "quiet", "Quiet", order=1)

            games = await l.games.get_games(db)
            assert [(game.slug, bets) for game, bets in games] == [
                ("quiet", 0),
                ("busy", 2),
                ("done", 0),
            ]

            future = await l.games.get_games(db, progress=GameProgress.FUTURE)
            assert [(game.slug, bets) for game, bets in future] == [("busy", 2), ("quiet", 0)]
            finished = await l.games.get_games(db, progress=GameProgress.FINISHED)
            assert [game.slug for game, _ in finished] == ["done"]

    ledger.run(scenario)
