"""Request-scoped dependencies: the acting user."""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.database.dependencies import get_db
from jasb.errors import ForbiddenError, UnauthorizedError
from jasb.models import User
from jasb.services import auth_service


def session_token(authorization: Optional[str] = Header(None)) -> str:
    """Bearer token from the ``Authorization`` header."""
    if not authorization:
        raise UnauthorizedError("Not logged in.")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("Malformed Authorization header.")
    return token.strip()


async def current_user(
    x_user: Optional[str] = Header(None),
    token: str = Depends(session_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """User named by ``X-User`` whose session the bearer token proves."""
    if not x_user:
        raise UnauthorizedError("Not logged in.")
    return await auth_service.authenticate(db, x_user, token)


def require_self(user: User, slug: str) -> None:
    if user.slug != slug:
        raise ForbiddenError("You can only do that for yourself.")
