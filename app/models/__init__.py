"""Database models for WagerClock."""

from app.models.base import Base, async_session_factory, engine, init_models
from app.models.domain import (
    Market,
    MarketStatus,
    Match,
    Wager,
    WagerStatus,
)

__all__ = [
    # Base
    "Base",
    "engine",
    "async_session_factory",
    "init_models",
    # Domain models
    "Market",
    "Match",
    "Wager",
    # Enums
    "MarketStatus",
    "WagerStatus",
]
