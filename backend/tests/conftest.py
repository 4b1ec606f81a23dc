"""
Shared test harness.

Each test gets its own sqlite database file and a fresh set of services wired
to default rules. Scenarios are coroutines run with ``asyncio.run`` so engine
connections never outlive their event loop.
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from jasb.config import AuthConfig, RulesConfig
from jasb.database.session import create_engine, create_session_factory, init_models
from jasb.models import Bet, User
from jasb.schemas.bet import NewOption
from jasb.services.account_service import AccountService
from jasb.services.auth_service import AuthService
from jasb.services.bet_service import BetService
from jasb.services.emitter import Collaborators
from jasb.services.game_service import GameService
from jasb.services.lookups import load_user
from jasb.services.resolution_service import ResolutionService
from jasb.services.stake_service import StakeService


class RecordingRelay:
    """Feed relay that keeps what it was given."""

    def __init__(self, fail: bool = False):
        self.delivered = []
        self.fail = fail

    async def deliver(self, events):
        if self.fail:
            raise RuntimeError("relay down")
        self.delivered.extend(events)


class Ledger:
    """A database plus services sharing one set of rules."""

    def __init__(self, path: Path):
        self.url = f"sqlite+aiosqlite:///{path}"
        self.rules = RulesConfig()
        self.relay = RecordingRelay()
        self.collaborators = Collaborators(relay=self.relay)
        self.accounts = AccountService(rules=self.rules, collaborators=self.collaborators)
        self.auth = AuthService(config=AuthConfig(), accounts=self.accounts)
        self.resolution = ResolutionService(self.accounts)
        self.stakes = StakeService(self.accounts)
        self.bets = BetService(auth=self.auth, resolution=self.resolution)
        self.games = GameService(auth=self.auth)
        self.engine = None
        self._sessions = None

    def run(self, scenario):
        """Run ``scenario(ledger)`` on a fresh schema and return its result."""

        async def main():
            self.engine = create_engine(self.url, echo=False)
            await init_models(self.engine)
            self._sessions = create_session_factory(self.engine)
            try:
                return await scenario(self)
            finally:
                await self.engine.dispose()

        return asyncio.run(main())

    @asynccontextmanager
    async def session(self):
        db = self._sessions()
        try:
            yield db
        finally:
            await db.close()

    async def user(self, db, slug: str, admin: bool = False) -> User:
        return await self.accounts.create_account(db, slug, slug.title(), admin=admin)

    async def balance(self, slug: str) -> int:
        async with self.session() as db:
            return (await load_user(db, slug)).balance

    async def setup_game(self, db, admin: User, game: str = "game", lock_moment: str = "start"):
        await self.games.add_game(db, admin, game, game.title())
        await self.games.add_lock_moment(db, admin, game, lock_moment, lock_moment.title())

    async def new_bet(
        self,
        db,
        admin: User,
        bet: str = "bet",
        options=("a", "b"),
        game: str = "game",
        lock_moment: str = "start",
    ) -> Bet:
        return await self.bets.new_bet(
            db,
            admin,
            game,
            bet,
            bet.title(),
            lock_moment,
            [NewOption(id=slug, name=slug.upper()) for slug in options],
        )


@pytest.fixture
def ledger(tmp_path):
    return Ledger(tmp_path / "jasb.db")
