"""Stake routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.api.deps import current_user
from jasb.database.dependencies import get_db
from jasb.models import User
from jasb.schemas import BalanceResponse, StakeRequest
from jasb.services import stake_service

router = APIRouter(
    prefix="/api/games/{game}/bets/{bet}/options/{option}/stake",
    tags=["Stakes"],
)


@router.put("", response_model=BalanceResponse)
async def place_stake(
    game: str,
    bet: str,
    option: str,
    request: StakeRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """Place a new stake; returns the new balance."""
    balance = await stake_service.place(
        db,
        user,
        game,
        bet,
        option,
        request.amount,
        message=request.message,
        expected_version=request.version,
    )
    return BalanceResponse(balance=balance)


@router.post("", response_model=BalanceResponse)
async def change_stake(
    game: str,
    bet: str,
    option: str,
    request: StakeRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    balance = await stake_service.change(
        db,
        user,
        game,
        bet,
        option,
        request.amount,
        message=request.message,
        expected_version=request.version,
    )
    return BalanceResponse(balance=balance)


@router.delete("", response_model=BalanceResponse)
async def withdraw_stake(
    game: str,
    bet: str,
    option: str,
    version: Optional[int] = Query(None, ge=0),
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    balance = await stake_service.withdraw(
        db, user, game, bet, option, expected_version=version
    )
    return BalanceResponse(balance=balance)
