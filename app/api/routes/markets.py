"""Market lifecycle API endpoints."""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.api.dependencies import get_auto_close_scheduler, get_market_store
from app.services.auto_close import MarketAutoCloseScheduler, close_expired_markets
from app.services.errors import TransientStorageError
from app.services.storage import MarketContext, MarketStore

router = APIRouter(prefix="/api/markets", tags=["markets"])
logger = structlog.get_logger(__name__)


class DueMarket(BaseModel):
    """Open market whose close time has passed."""

    id: int
    name: str
    market_type: str
    close_time: datetime
    status: str

    @classmethod
    def from_context(cls, market: MarketContext) -> "DueMarket":
        return cls(
            id=market.id,
            name=market.name,
            market_type=market.market_type,
            close_time=market.close_time,
            status=market.status.value,
        )


class DueMarketsResponse(BaseModel):
    """Markets waiting for the next auto-close tick."""

    items: list[DueMarket]
    total: int
    checked_at: datetime


class SweepResponse(BaseModel):
    """Result of a manually triggered sweep."""

    markets_due: int
    markets_closed: int
    errors: int


@router.get("/due", response_model=DueMarketsResponse)
async def list_due_markets(store: MarketStore = Depends(get_market_store)):
    """
    List open markets whose close time has passed.

    These are the markets the next auto-close tick will close.
    """
    now = datetime.now(timezone.utc)
    try:
        markets = await store.list_open_markets_past_close_time(now)
    except TransientStorageError as e:
        logger.error("due_markets_query_failed", error=str(e))
        raise HTTPException(status_code=503, detail="Market store unavailable")

    return DueMarketsResponse(
        items=[DueMarket.from_context(m) for m in markets],
        total=len(markets),
        checked_at=now,
    )


@router.post("/close-expired", response_model=SweepResponse)
async def close_expired(
    store: MarketStore = Depends(get_market_store),
    scheduler: MarketAutoCloseScheduler | None = Depends(get_auto_close_scheduler),
):
    """
    Run one auto-close sweep now instead of waiting for the next tick.

    Safe to call at any time: a market already closed by a tick is not
    selected again.
    """
    if scheduler is not None:
        stats = await scheduler.tick()
    else:
        stats = await close_expired_markets(store)

    logger.info("close_expired_triggered_manually", **stats)
    return SweepResponse(**stats)
