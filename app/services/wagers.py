"""Active wager selection and potential payouts.

A wager is active (still awaiting settlement) when its status is PENDING
and its result is empty or the literal "pending". Cancelled and settled
wagers are never active, whatever their result field holds.
"""

from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import ColumnElement, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.domain import Wager, WagerStatus
from app.services.storage import (
    ContextResolver,
    MarketContext,
    MatchContext,
    SqlContextResolver,
)
from app.services.valuation import GameType, ValuationEngine, ValuationResult

logger = structlog.get_logger(__name__)

PENDING_RESULT = "pending"


def is_active_wager(wager: Any) -> bool:
    """True when the wager is pending and has no real result yet."""
    if (wager.status or "").lower() != WagerStatus.PENDING.value:
        return False
    result = wager.result
    return not result or result == PENDING_RESULT


def active_wager_filter() -> ColumnElement[bool]:
    """SQL equivalent of is_active_wager (status compared case-insensitively)."""
    return and_(
        func.lower(Wager.status) == WagerStatus.PENDING.value,
        or_(
            Wager.result.is_(None),
            Wager.result == "",
            Wager.result == PENDING_RESULT,
        ),
    )


async def resolve_context(
    resolver: ContextResolver,
    wager: Wager,
) -> MatchContext | MarketContext | None:
    """Look up the match or market a wager is priced against."""
    game_type = GameType.parse(wager.game_type)
    if game_type.is_team_game:
        if wager.match_id is None:
            return None
        return await resolver.get_match(wager.match_id)
    if wager.market_id is not None:
        return await resolver.get_market(wager.market_id)
    return None


@dataclass
class WagerValuation:
    """A wager together with its valuation."""

    wager: Wager
    valuation: ValuationResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "wager_id": self.wager.id,
            "user_id": self.wager.user_id,
            "game_type": self.wager.game_type,
            "prediction": self.wager.prediction,
            "status": self.wager.status,
            "result": self.wager.result,
            "payout": self.wager.payout,
            "created_at": self.wager.created_at,
            "valuation": self.valuation.to_dict(),
        }


async def value_stored_wager(
    session: AsyncSession,
    wager: Wager,
    engine: ValuationEngine,
) -> WagerValuation:
    """
    Price a stored wager.

    Active wagers get an advisory potential payout; anything else is
    valued as settlement would value it.
    """
    context = await resolve_context(SqlContextResolver(session), wager)
    valuation = engine.value(wager, context, advisory=is_active_wager(wager))
    return WagerValuation(wager=wager, valuation=valuation)


async def active_wagers_with_potential_payout(
    session: AsyncSession,
    user_id: int,
    engine: ValuationEngine,
) -> list[WagerValuation]:
    """A user's active wagers, newest first, with their potential payouts."""
    result = await session.execute(
        select(Wager)
        .where(Wager.user_id == user_id, active_wager_filter())
        .order_by(Wager.created_at.desc(), Wager.id.desc())
    )
    wagers = result.scalars().all()

    resolver = SqlContextResolver(session)
    items = []
    for wager in wagers:
        context = await resolve_context(resolver, wager)
        items.append(
            WagerValuation(
                wager=wager,
                valuation=engine.potential_payout(wager, context),
            )
        )

    logger.debug("active_wagers_valued", user_id=user_id, count=len(items))
    return items
