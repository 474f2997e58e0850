"""Pytest configuration and fixtures for WagerClock tests."""

import asyncio
import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from app.models.domain import MarketStatus
from app.services.errors import (
    InvalidStatusTransitionError,
    MarketNotFoundError,
    TransientStorageError,
)
from app.services.storage import MarketContext, MatchContext


class InMemoryMarketStore:
    """MarketStore fake with switchable failures."""

    def __init__(self, markets=()):
        self.markets = {m.id: m for m in markets}
        self.fail_query = False
        self.fail_on_update: set[int] = set()
        self.updates: list[tuple[int, MarketStatus]] = []
        self.query_count = 0

        # Set to make the discovery query wait until released
        self.query_gate: asyncio.Event | None = None
        self.query_started = asyncio.Event()

    async def list_open_markets_past_close_time(self, now):
        self.query_count += 1
        self.query_started.set()
        if self.query_gate is not None:
            await self.query_gate.wait()
        if self.fail_query:
            raise TransientStorageError("connection refused")
        return [
            m for m in self.markets.values()
            if m.status is MarketStatus.OPEN and m.close_time <= now
        ]

    async def set_market_status(self, market_id, status):
        if market_id in self.fail_on_update:
            raise TransientStorageError(f"deadlock updating {market_id}")
        market = self.markets.get(market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        if not market.status.can_transition_to(status):
            raise InvalidStatusTransitionError(market_id, market.status.value, status.value)
        self.markets[market_id] = dataclasses.replace(market, status=status)
        self.updates.append((market_id, status))

    def status_of(self, market_id):
        return self.markets[market_id].status


@pytest.fixture
def make_store():
    """Factory for in-memory market stores."""
    return InMemoryMarketStore


@pytest.fixture
def now():
    return datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_market(now):
    """Factory for market views relative to the fixed `now`."""

    def _make(
        market_id,
        close_in=timedelta(seconds=-1),
        status=MarketStatus.OPEN,
        name=None,
        payout_multipliers=None,
    ):
        return MarketContext(
            id=market_id,
            name=name or f"Market {market_id}",
            market_type="dishawar",
            close_time=now + close_in,
            status=status,
            payout_multipliers=payout_multipliers or {},
        )

    return _make


@pytest.fixture
def match_context():
    """Team match with 2.50x on team A and 1.60x on team B."""
    return MatchContext(
        id=7,
        team_a="Mumbai Indians",
        team_b="Chennai Super Kings",
        odd_team_a=250,
        odd_team_b=160,
    )


@pytest.fixture
async def sqlite_engine(tmp_path):
    """Async engine on a throwaway SQLite file with the schema created."""
    from app.models.base import get_engine, init_models

    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'wagerclock.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine):
    from app.models.base import get_session_factory

    return get_session_factory(sqlite_engine)
