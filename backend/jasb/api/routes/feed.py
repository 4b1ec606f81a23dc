"""Public feed routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.database.dependencies import get_db
from jasb.schemas import FeedItemResponse
from jasb.services import feed_service

router = APIRouter(prefix="/api/feed", tags=["Feed"])


@router.get("", response_model=list[FeedItemResponse])
async def get_feed(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    items = await feed_service.get_feed(db, limit=limit)
    return [FeedItemResponse.model_validate(item) for item in items]
