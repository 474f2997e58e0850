"""Storage collaborators for the scheduler and the valuation engine.

The scheduler only needs two calls (find markets due for close, set a
market's status) and the valuation engine only needs read access to a
wager's match or market. Both are expressed as protocols so the services
can run against the SQL implementations here or against in-memory fakes.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.domain import Market, MarketStatus, Match
from app.services.errors import (
    InvalidStatusTransitionError,
    MarketNotFoundError,
    TransientStorageError,
)

logger = structlog.get_logger(__name__)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class MarketContext:
    """Read-only view of a market, as seen by the scheduler and the engine."""

    id: int
    name: str
    market_type: str
    close_time: datetime
    status: MarketStatus
    payout_multipliers: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def from_model(cls, market: Market) -> "MarketContext":
        return cls(
            id=market.id,
            name=market.name,
            market_type=market.market_type,
            close_time=as_utc(market.close_time),
            status=MarketStatus(market.status),
            payout_multipliers=dict(market.payout_multipliers or {}),
        )


@dataclass(frozen=True)
class MatchContext:
    """Read-only view of a team-vs-team match. Odds are scaled by 100."""

    id: int
    team_a: str
    team_b: str
    odd_team_a: int | None = None
    odd_team_b: int | None = None
    status: MarketStatus = MarketStatus.OPEN

    @classmethod
    def from_model(cls, match: Match) -> "MatchContext":
        return cls(
            id=match.id,
            team_a=match.team_a,
            team_b=match.team_b,
            odd_team_a=match.odd_team_a,
            odd_team_b=match.odd_team_b,
            status=MarketStatus(match.status),
        )


class MarketStore(Protocol):
    """Storage calls made by the auto-close scheduler."""

    async def list_open_markets_past_close_time(
        self, now: datetime
    ) -> Sequence[MarketContext]:
        """Markets with status OPEN and close_time <= now."""
        ...

    async def set_market_status(self, market_id: int, status: MarketStatus) -> None:
        """
        Atomically update one market's status.

        Raises MarketNotFoundError, InvalidStatusTransitionError or
        TransientStorageError.
        """
        ...


class ContextResolver(Protocol):
    """Read-only lookups used to price a wager. Absence is not an error."""

    async def get_market(self, market_id: int) -> MarketContext | None:
        ...

    async def get_match(self, match_id: int) -> MatchContext | None:
        ...


class SqlMarketStore:
    """MarketStore backed by SQLAlchemy. One transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_open_markets_past_close_time(
        self, now: datetime
    ) -> list[MarketContext]:
        query = (
            select(Market)
            .where(
                Market.status == MarketStatus.OPEN.value,
                Market.close_time <= as_utc(now),
            )
            .order_by(Market.close_time, Market.id)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return [MarketContext.from_model(m) for m in result.scalars().all()]
        except (SQLAlchemyError, OSError) as e:
            raise TransientStorageError(f"Failed to list markets due for close: {e}") from e

    async def set_market_status(self, market_id: int, status: MarketStatus) -> None:
        target = MarketStatus(status)
        try:
            async with self._session_factory() as session:
                current = await session.scalar(
                    select(Market.status).where(Market.id == market_id)
                )
                if current is None:
                    raise MarketNotFoundError(market_id)

                current_status = MarketStatus(current)
                if not current_status.can_transition_to(target):
                    raise InvalidStatusTransitionError(
                        market_id, current_status.value, target.value
                    )

                # Conditional on the status we just read, so a concurrent
                # writer cannot be overwritten.
                result = await session.execute(
                    update(Market)
                    .where(
                        Market.id == market_id,
                        Market.status == current_status.value,
                    )
                    .values(status=target.value)
                )
                if result.rowcount != 1:
                    # Another writer moved the market first; report what it
                    # moved it to.
                    await session.rollback()
                    latest = await session.scalar(
                        select(Market.status).where(Market.id == market_id)
                    )
                    if latest is None:
                        raise MarketNotFoundError(market_id)
                    raise InvalidStatusTransitionError(
                        market_id, MarketStatus(latest).value, target.value
                    )
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise TransientStorageError(
                f"Failed to update market {market_id}: {e}"
            ) from e

        logger.debug(
            "market_status_updated",
            market_id=market_id,
            old_status=current_status.value,
            new_status=target.value,
        )


class SqlContextResolver:
    """ContextResolver backed by SQLAlchemy, sharing the caller's session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_market(self, market_id: int) -> MarketContext | None:
        market = await self._session.get(Market, market_id)
        return MarketContext.from_model(market) if market else None

    async def get_match(self, match_id: int) -> MatchContext | None:
        match = await self._session.get(Match, match_id)
        return MatchContext.from_model(match) if match else None
