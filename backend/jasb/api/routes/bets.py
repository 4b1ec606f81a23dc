"""Bet routes: authoring, editing and lifecycle."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.api.deps import current_user
from jasb.database.dependencies import get_db
from jasb.models import User
from jasb.schemas import (
    BetCreate,
    BetEdit,
    BetResponse,
    CancelRequest,
    CompleteRequest,
    FeedItemResponse,
    VersionedRequest,
)
from jasb.services import bet_service, feed_service

router = APIRouter(prefix="/api/games/{game}/bets", tags=["Bets"])


@router.get("", response_model=list[BetResponse])
async def list_bets(game: str, db: AsyncSession = Depends(get_db)):
    bets = await bet_service.get_bets(db, game)
    return [BetResponse.from_bet(bet) for bet in bets]


@router.get("/{bet}", response_model=BetResponse)
async def get_bet(game: str, bet: str, db: AsyncSession = Depends(get_db)):
    return BetResponse.from_bet(await bet_service.get_bet(db, game, bet))


@router.get("/{bet}/feed", response_model=list[FeedItemResponse])
async def get_bet_feed(game: str, bet: str, db: AsyncSession = Depends(get_db)):
    items = await feed_service.get_bet_feed(db, game, bet)
    return [FeedItemResponse.model_validate(item) for item in items]


@router.put("/{bet}", response_model=BetResponse, status_code=201)
async def new_bet(
    game: str,
    bet: str,
    request: BetCreate,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    created = await bet_service.new_bet(
        db,
        user,
        game,
        bet,
        request.name,
        request.lock_moment,
        request.options,
        description=request.description,
        spoiler=request.spoiler,
    )
    return BetResponse.from_bet(created)


@router.post("/{bet}", response_model=BetResponse)
async def edit_bet(
    game: str,
    bet: str,
    request: BetEdit,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    edited = await bet_service.edit_bet(
        db,
        user,
        game,
        bet,
        request.version,
        name=request.name,
        description=request.description,
        spoiler=request.spoiler,
        lock_moment_slug=request.lock_moment,
        remove_options=request.remove_options,
        edit_options=request.edit_options,
        add_options=request.add_options,
    )
    return BetResponse.from_bet(edited)


@router.post("/{bet}/lock", response_model=BetResponse)
async def lock_bet(
    game: str,
    bet: str,
    request: VersionedRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    return BetResponse.from_bet(
        await bet_service.lock(db, user, game, bet, request.version)
    )


@router.post("/{bet}/unlock", response_model=BetResponse)
async def unlock_bet(
    game: str,
    bet: str,
    request: VersionedRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    return BetResponse.from_bet(
        await bet_service.unlock(db, user, game, bet, request.version)
    )


@router.post("/{bet}/complete", response_model=BetResponse)
async def complete_bet(
    game: str,
    bet: str,
    request: CompleteRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """Resolve the bet and pay out the winners."""
    return BetResponse.from_bet(
        await bet_service.complete(db, user, game, bet, request.version, request.winners)
    )


@router.post("/{bet}/revert-complete", response_model=BetResponse)
async def revert_complete(
    game: str,
    bet: str,
    request: VersionedRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    return BetResponse.from_bet(
        await bet_service.revert_complete(db, user, game, bet, request.version)
    )


@router.post("/{bet}/cancel", response_model=BetResponse)
async def cancel_bet(
    game: str,
    bet: str,
    request: CancelRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel the bet and refund every stake."""
    return BetResponse.from_bet(
        await bet_service.cancel(db, user, game, bet, request.version, request.reason)
    )


@router.post("/{bet}/revert-cancel", response_model=BetResponse)
async def revert_cancel(
    game: str,
    bet: str,
    request: VersionedRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    return BetResponse.from_bet(
        await bet_service.revert_cancel(db, user, game, bet, request.version)
    )
