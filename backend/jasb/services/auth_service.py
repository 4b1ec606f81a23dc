"""Sessions, admin rights and per-game permissions."""

import logging
import secrets
from typing import Optional

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.config import AuthConfig, get_settings
from jasb.database.session import in_transaction
from jasb.errors import ForbiddenError, UnauthorizedError
from jasb.models import Game, Permission, User, UserSession
from jasb.schemas.user import GamePermission
from jasb.services.account_service import AccountService, account_service
from jasb.services.lookups import load_game, load_user
from jasb.utils.time_utils import as_utc, utc_now

logger = logging.getLogger(__name__)


class AuthService:
    """
    Session bookkeeping for users signed in through the external OAuth flow.

    The OAuth handshake itself happens elsewhere; it calls ``login`` with the
    identity it established.
    """

    def __init__(
        self,
        config: Optional[AuthConfig] = None,
        accounts: Optional[AccountService] = None,
    ):
        self._config = config
        self.accounts = accounts or account_service

    @property
    def config(self) -> AuthConfig:
        return self._config or get_settings().auth

    async def login(
        self, db: AsyncSession, slug: str, name: str
    ) -> tuple[User, str, bool]:
        """Open a session, creating the account on first login."""
        async with self.accounts.collaborators.transaction(db) as emitter:
            result = await db.execute(select(User).where(User.slug == slug))
            user = result.scalar_one_or_none()
            is_new = user is None
            if is_new:
                user = await self.accounts.open_account(db, emitter, slug, name)
            elif user.name != name:
                user.name = name

            token = secrets.token_urlsafe(self.config.session_id_size)
            db.add(UserSession(user_id=user.id, token=token))

        logger.info(f"Session started for {slug}{' (new user)' if is_new else ''}")
        return user, token, is_new

    async def authenticate(self, db: AsyncSession, slug: str, token: str) -> User:
        """The user behind a live session, or ``UnauthorizedError``."""
        result = await db.execute(
            select(UserSession).where(UserSession.token == token)
        )
        session = result.scalar_one_or_none()
        if session is None or session.user.slug != slug:
            raise UnauthorizedError("Not logged in.")
        if as_utc(session.started) + self.config.session_lifetime <= utc_now():
            raise UnauthorizedError("Session expired.")
        return session.user

    async def logout(self, db: AsyncSession, user: User, token: str) -> None:
        async with in_transaction(db):
            await db.execute(
                delete(UserSession).where(
                    UserSession.user_id == user.id, UserSession.token == token
                )
            )
        logger.info(f"Session ended for {user.slug}")

    async def garbage_collect(self, db: AsyncSession) -> int:
        """Delete expired sessions, returning how many were removed."""
        cutoff = utc_now() - self.config.session_lifetime
        async with in_transaction(db):
            result = await db.execute(
                delete(UserSession).where(UserSession.started <= cutoff)
            )
        removed = result.rowcount or 0
        logger.info(f"Garbage collected {removed} expired session(s)")
        return removed

    def require_admin(self, user: User) -> None:
        if not user.admin:
            raise ForbiddenError("Only admins can do that.")

    async def can_manage_bets(self, db: AsyncSession, user: User, game: Game) -> bool:
        if user.admin:
            return True
        result = await db.execute(
            select(Permission.manage_bets).where(
                Permission.user_id == user.id, Permission.game_id == game.id
            )
        )
        return bool(result.scalar_one_or_none())

    async def require_bet_manager(self, db: AsyncSession, user: User, game: Game) -> None:
        if not await self.can_manage_bets(db, user, game):
            raise ForbiddenError(f"You can't manage bets for {game.slug}.")

    async def get_permissions(
        self, db: AsyncSession, user_slug: str
    ) -> list[GamePermission]:
        """Every game, with whether the user may manage its bets."""
        user = await load_user(db, user_slug)
        result = await db.execute(
            select(Game.slug, Game.name, func.coalesce(Permission.manage_bets, False))
            .outerjoin(
                Permission,
                and_(Permission.game_id == Game.id, Permission.user_id == user.id),
            )
            .order_by(Game.slug)
        )
        return [
            GamePermission(game=slug, game_name=name, manage_bets=bool(manage_bets))
            for slug, name, manage_bets in result.all()
        ]

    async def set_permission(
        self,
        db: AsyncSession,
        actor: User,
        user_slug: str,
        game_slug: str,
        manage_bets: bool,
    ) -> Permission:
        """Grant or revoke a user's right to manage a game's bets."""
        self.require_admin(actor)
        async with in_transaction(db):
            user = await load_user(db, user_slug)
            game = await load_game(db, game_slug)
            result = await db.execute(
                select(Permission).where(
                    Permission.user_id == user.id, Permission.game_id == game.id
                )
            )
            permission = result.scalar_one_or_none()
            if permission is None:
                permission = Permission(user_id=user.id, game_id=game.id)
                db.add(permission)
            permission.manage_bets = manage_bets

        logger.info(
            f"{actor.slug} set manage_bets={manage_bets} for {user_slug} on {game_slug}"
        )
        return permission

    async def set_admin(self, db: AsyncSession, slug: str, admin: bool = True) -> User:
        async with in_transaction(db):
            user = await load_user(db, slug)
            user.admin = admin
        logger.info(f"Set admin={admin} for {slug}")
        return user


auth_service = AuthService()
