"""Wager valuation API endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db, get_engine
from app.models.domain import Wager
from app.services.errors import InvalidWagerError
from app.services.valuation import ValuationEngine
from app.services.wagers import (
    WagerValuation,
    active_wagers_with_potential_payout,
    value_stored_wager,
)

router = APIRouter(prefix="/api", tags=["wagers"])


class Valuation(BaseModel):
    """Multiplier and payout for a wager. Amounts in minor units."""

    game_type: str
    multiplier: int
    payout: int
    bet_amount: int
    mode: str | None = None
    side: str | None = None
    prediction_label: str
    advisory: bool
    warning: str | None = None


class WagerValuationResponse(BaseModel):
    """A wager with its valuation."""

    wager_id: int
    user_id: int
    game_type: str
    prediction: str
    status: str
    result: str | None = None
    payout: int | None = None
    created_at: datetime | None = None
    valuation: Valuation


class ActiveWagersResponse(BaseModel):
    """A user's active wagers with potential payouts."""

    user_id: int
    items: list[WagerValuationResponse]
    total: int
    total_potential_payout: int


def _to_response(item: WagerValuation) -> WagerValuationResponse:
    return WagerValuationResponse(**item.to_dict())


@router.get("/wagers/{wager_id}/valuation", response_model=WagerValuationResponse)
async def get_wager_valuation(
    wager_id: int,
    db: AsyncSession = Depends(get_db),
    engine: ValuationEngine = Depends(get_engine),
):
    """
    Value a single wager.

    Pending wagers get an advisory potential payout; the stored payout of a
    settled wager stays authoritative.
    """
    wager = await db.get(Wager, wager_id)
    if not wager:
        raise HTTPException(status_code=404, detail="Wager not found")

    try:
        item = await value_stored_wager(db, wager, engine)
    except InvalidWagerError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return _to_response(item)


@router.get("/users/{user_id}/active-wagers", response_model=ActiveWagersResponse)
async def get_active_wagers(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    engine: ValuationEngine = Depends(get_engine),
):
    """List a user's active (pending) wagers with potential payouts."""
    try:
        items = await active_wagers_with_potential_payout(db, user_id, engine)
    except InvalidWagerError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return ActiveWagersResponse(
        user_id=user_id,
        items=[_to_response(i) for i in items],
        total=len(items),
        total_potential_payout=sum(i.valuation.payout for i in items),
    )
