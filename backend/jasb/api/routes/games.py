"""Game and lock moment routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.api.deps import current_user
from jasb.database.dependencies import get_db
from jasb.models import BetProgress, GameProgress, User
from jasb.schemas import (
    BetLockStatus,
    BetResponse,
    GameCreate,
    GameEdit,
    GameResponse,
    GameSummary,
    LockMomentCreate,
    LockMomentEdit,
    LockMomentResponse,
    LockMomentStatus,
    VersionedRequest,
)
from jasb.services import game_service

router = APIRouter(prefix="/api/games", tags=["Games"])


@router.get("", response_model=list[GameSummary])
async def list_games(
    progress: Optional[GameProgress] = None,
    db: AsyncSession = Depends(get_db),
):
    games = await game_service.get_games(db, progress=progress)
    return [
        GameSummary(**GameResponse.model_validate(game).model_dump(), bets=bets)
        for game, bets in games
    ]


@router.get("/{game}", response_model=GameResponse)
async def get_game(game: str, db: AsyncSession = Depends(get_db)):
    return GameResponse.model_validate(await game_service.get_game(db, game))


@router.put("/{game}", response_model=GameResponse, status_code=201)
async def add_game(
    game: str,
    request: GameCreate,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    created = await game_service.add_game(
        db, user, game, request.name, progress=request.progress, order=request.order
    )
    return GameResponse.model_validate(created)


@router.post("/{game}", response_model=GameResponse)
async def edit_game(
    game: str,
    request: GameEdit,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    edited = await game_service.edit_game(
        db,
        user,
        game,
        request.version,
        name=request.name,
        progress=request.progress,
        order=request.order,
    )
    return GameResponse.model_validate(edited)


@router.get("/{game}/lock-moments", response_model=list[LockMomentResponse])
async def list_lock_moments(game: str, db: AsyncSession = Depends(get_db)):
    lock_moments = await game_service.get_lock_moments(db, game)
    return [LockMomentResponse.model_validate(lm) for lm in lock_moments]


@router.get("/{game}/lock-status", response_model=list[LockMomentStatus])
async def lock_status(game: str, db: AsyncSession = Depends(get_db)):
    """Every lock moment with whether its bets are locked yet."""
    status = await game_service.lock_status(db, game)
    return [
        LockMomentStatus(
            lock_moment=LockMomentResponse.model_validate(lock_moment),
            bets=[
                BetLockStatus(
                    bet_id=bet.slug,
                    bet_name=bet.name,
                    bet_version=bet.version,
                    locked=bet.progress != BetProgress.VOTING,
                )
                for bet in bets
            ],
        )
        for lock_moment, bets in status
    ]


@router.put(
    "/{game}/lock-moments/{lock_moment}",
    response_model=LockMomentResponse,
    status_code=201,
)
async def add_lock_moment(
    game: str,
    lock_moment: str,
    request: LockMomentCreate,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    created = await game_service.add_lock_moment(
        db, user, game, lock_moment, request.name, order=request.order
    )
    return LockMomentResponse.model_validate(created)


@router.post("/{game}/lock-moments/{lock_moment}", response_model=LockMomentResponse)
async def edit_lock_moment(
    game: str,
    lock_moment: str,
    request: LockMomentEdit,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    edited = await game_service.edit_lock_moment(
        db, user, game, lock_moment, request.version, name=request.name, order=request.order
    )
    return LockMomentResponse.model_validate(edited)


@router.delete("/{game}/lock-moments/{lock_moment}", status_code=204)
async def remove_lock_moment(
    game: str,
    lock_moment: str,
    version: int = Query(..., ge=0),
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    await game_service.remove_lock_moment(db, user, game, lock_moment, version)


@router.post("/{game}/lock-moments/{lock_moment}/lock", response_model=list[BetResponse])
async def lock_moment(
    game: str,
    lock_moment: str,
    request: VersionedRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """Lock every voting bet at this moment."""
    bets = await game_service.lock_moment(db, user, game, lock_moment, request.version)
    return [BetResponse.from_bet(bet) for bet in bets]
