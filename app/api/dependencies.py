"""FastAPI dependencies for WagerClock."""

from collections.abc import AsyncGenerator

import redis.asyncio as redis
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.base import async_session_factory
from app.services.auto_close import MarketAutoCloseScheduler
from app.services.storage import MarketStore, SqlMarketStore
from app.services.valuation import ValuationEngine, get_valuation_engine


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_redis() -> AsyncGenerator[redis.Redis, None]:
    """Get Redis client dependency."""
    settings = get_settings()
    client = redis.from_url(settings.redis_url)
    try:
        yield client
    finally:
        await client.aclose()


def get_market_store() -> MarketStore:
    """Get the market store used by the auto-close sweep."""
    return SqlMarketStore(async_session_factory)


def get_engine() -> ValuationEngine:
    """Get the shared valuation engine."""
    return get_valuation_engine()


def get_auto_close_scheduler(request: Request) -> MarketAutoCloseScheduler | None:
    """Get the scheduler started by the application lifespan, if any."""
    return getattr(request.app.state, "auto_close_scheduler", None)
