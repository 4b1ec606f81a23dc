"""User, leaderboard, notification and session routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.api.deps import current_user, require_self, session_token
from jasb.database.dependencies import get_db
from jasb.models import User
from jasb.schemas import (
    AuditEntryResponse,
    BalanceHistoryResponse,
    BankruptcyStats,
    BetResponse,
    DebtEntry,
    GamePermission,
    LeaderboardEntry,
    NotificationResponse,
    PermissionRequest,
    UserDetailResponse,
    UserResponse,
)
from jasb.services import (
    account_service,
    auth_service,
    bet_service,
    notification_service,
)

router = APIRouter(prefix="/api", tags=["Users"])


@router.get("/auth", response_model=UserResponse)
async def whoami(user: User = Depends(current_user)):
    """The user behind the presented session."""
    return UserResponse.model_validate(user)


@router.post("/auth/logout", status_code=204)
async def logout(
    user: User = Depends(current_user),
    token: str = Depends(session_token),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.logout(db, user, token)


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def leaderboard(
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.leaderboard(db, limit=limit)


@router.get("/leaderboard/debt", response_model=list[DebtEntry])
async def debt_leaderboard(
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.debt_leaderboard(db, limit=limit)


@router.get("/users/{slug}", response_model=UserDetailResponse)
async def get_user(slug: str, db: AsyncSession = Depends(get_db)):
    user = await account_service.get_user(db, slug)
    staked = await account_service.staked(db, user)
    return UserDetailResponse(
        slug=user.slug,
        name=user.name,
        balance=user.balance,
        admin=user.admin,
        created=user.created,
        staked=staked,
        net_worth=user.balance + staked,
    )


@router.get("/users/{slug}/bets", response_model=list[BetResponse])
async def get_user_bets(slug: str, db: AsyncSession = Depends(get_db)):
    bets = await bet_service.get_user_bets(db, slug)
    return [BetResponse.from_bet(bet) for bet in bets]


@router.get("/users/{slug}/bankrupt", response_model=BankruptcyStats)
async def bankruptcy_stats(
    slug: str,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """What going bankrupt would cost."""
    require_self(user, slug)
    return await account_service.bankruptcy_stats(db, user)


@router.post("/users/{slug}/bankrupt", response_model=UserResponse)
async def bankrupt(
    slug: str,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    require_self(user, slug)
    user = await account_service.bankrupt(db, user)
    return UserResponse.model_validate(user)


@router.get("/users/{slug}/audit", response_model=BalanceHistoryResponse)
async def audit_log(
    slug: str,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """Balance history, readable by the user and by admins."""
    if not user.admin:
        require_self(user, slug)
    target = await account_service.get_user(db, slug)
    entries = await account_service.audit_log(db, target)
    return BalanceHistoryResponse(
        balance=target.balance,
        reconstructed=await account_service.reconstruct_balance(db, target),
        entries=[AuditEntryResponse.model_validate(e) for e in entries],
    )


@router.get("/users/{slug}/permissions", response_model=list[GamePermission])
async def get_permissions(slug: str, db: AsyncSession = Depends(get_db)):
    return await auth_service.get_permissions(db, slug)


@router.put("/users/{slug}/permissions/{game}", status_code=204)
async def set_permission(
    slug: str,
    game: str,
    request: PermissionRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.set_permission(db, user, slug, game, request.manage_bets)


@router.get("/users/{slug}/notifications", response_model=list[NotificationResponse])
async def get_notifications(
    slug: str,
    include_read: bool = False,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    require_self(user, slug)
    notifications = await notification_service.get_notifications(
        db, user, include_read=include_read
    )
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.post("/users/{slug}/notifications/{notification_id}", status_code=204)
async def mark_read(
    slug: str,
    notification_id: UUID,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    require_self(user, slug)
    await notification_service.mark_read(db, user, notification_id)
