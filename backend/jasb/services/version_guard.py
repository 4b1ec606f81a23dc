"""Optimistic concurrency for shared entities."""

import logging
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from jasb.errors import InvalidStateError, VersionConflictError
from jasb.models import Bet, BetProgress
from jasb.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def _describe(entity) -> str:
    return f"{type(entity).__name__} {getattr(entity, 'slug', entity.id)}"


class VersionGuard:
    """
    Compare-and-swap on the ``version`` column.

    Writers present the version they read; the write only lands if nobody else
    has written since. Losers get ``VersionConflictError`` and nothing they did
    in the transaction survives.
    """

    def check(self, entity, expected_version: int) -> None:
        """Reject a stale version before doing any work."""
        if entity.version != expected_version:
            logger.warning(
                f"Version conflict on {_describe(entity)}: "
                f"expected {expected_version}, found {entity.version}"
            )
            raise VersionConflictError(
                _describe(entity), expected_version, entity.version
            )

    async def claim(self, db: AsyncSession, entity, expected_version: int) -> None:
        """Atomically move ``entity`` from ``expected_version`` to the next one."""
        self.check(entity, expected_version)

        model = type(entity)
        now = utc_now()
        result = await db.execute(
            update(model)
            .where(model.id == entity.id, model.version == expected_version)
            .values(version=model.version + 1, modified=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                f"Lost version race on {_describe(entity)} at {expected_version}"
            )
            raise VersionConflictError(_describe(entity), expected_version)

        set_committed_value(entity, "version", expected_version + 1)
        set_committed_value(entity, "modified", now)

    async def bump(self, db: AsyncSession, entity) -> int:
        """Increment the version of an entity changed under an existing claim."""
        model = type(entity)
        now = utc_now()
        result = await db.execute(
            update(model)
            .where(model.id == entity.id)
            .values(version=model.version + 1, modified=now)
            .returning(model.version)
            .execution_options(synchronize_session=False)
        )
        version = result.scalar_one_or_none()
        if version is None:
            logger.warning(f"{_describe(entity)} was removed by another writer")
            raise VersionConflictError(_describe(entity), entity.version)
        set_committed_value(entity, "version", version)
        set_committed_value(entity, "modified", now)
        return version

    async def advance(
        self,
        db: AsyncSession,
        bet: Bet,
        source: BetProgress,
        target: BetProgress,
    ) -> bool:
        """
        Move the bet to ``target`` only if its stored progress is still ``source``.

        The version is bumped in the same write. Returns False and leaves the
        bet alone when another writer has moved it on.
        """
        now = utc_now()
        result = await db.execute(
            update(Bet)
            .where(Bet.id == bet.id, Bet.progress == source)
            .values(progress=target, version=Bet.version + 1, modified=now)
            .returning(Bet.version)
            .execution_options(synchronize_session=False)
        )
        version = result.scalar_one_or_none()
        if version is None:
            logger.warning(f"Bet {bet.slug} left {source.value} before {target.value}")
            return False
        set_committed_value(bet, "progress", target)
        set_committed_value(bet, "version", version)
        set_committed_value(bet, "modified", now)
        return True

    async def pin(
        self,
        db: AsyncSession,
        bet: Bet,
        allowed: Iterable[BetProgress],
    ) -> None:
        """
        Touch the bet row only while its stored progress is one of ``allowed``.

        The row stays locked until commit, so a concurrent lock either waits for
        this transaction or has already made the write fail here.
        """
        allowed = list(allowed)
        result = await db.execute(
            update(Bet)
            .where(Bet.id == bet.id, Bet.progress.in_(allowed))
            .values(version=Bet.version)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Bet {bet.slug} left {[p.value for p in allowed]}")
            raise InvalidStateError(f"Bet {bet.slug} no longer accepts this change.")


version_guard = VersionGuard()
