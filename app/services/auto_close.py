"""Market auto-close scheduler.

Moves every OPEN market whose scheduled close time has passed to CLOSED,
checking once a minute. A market's closure is therefore observed at most
one interval (plus query latency) after its close time.

Exactly-once without coordination:
- Discovery only returns markets with status OPEN and close_time <= now
- The first successful update removes a market from later results
- Overlapping ticks or a restart mid-tick can at worst retry an update,
  which the store rejects as an invalid transition and the sweep skips

A failure on one market is logged and skipped; the rest of the sweep and
all future ticks carry on.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.models.domain import MarketStatus
from app.services.errors import InvalidStatusTransitionError
from app.services.storage import MarketStore

logger = structlog.get_logger(__name__)

CHECK_INTERVAL_SECONDS = 60
JOB_ID = "market_auto_close"


async def close_expired_markets(
    store: MarketStore,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Close every open market whose close time is at or before now.

    Never raises: query and per-market failures are logged and counted.

    Returns statistics about the sweep.
    """
    now = now or datetime.now(timezone.utc)
    stats = {
        "markets_due": 0,
        "markets_closed": 0,
        "errors": 0,
    }

    try:
        markets = await store.list_open_markets_past_close_time(now)
    except Exception as e:
        logger.error(
            "market_auto_close_query_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        stats["errors"] += 1
        return stats

    stats["markets_due"] = len(markets)
    if not markets:
        return stats

    logger.info("markets_due_for_close", count=len(markets))

    for market in markets:
        try:
            await store.set_market_status(market.id, MarketStatus.CLOSED)
        except Exception as e:
            if (
                isinstance(e, InvalidStatusTransitionError)
                and e.current == MarketStatus.CLOSED.value
            ):
                # Closed by an overlapping sweep
                logger.info("market_already_closed", market_id=market.id)
                continue
            logger.error(
                "market_auto_close_failed",
                market_id=market.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            stats["errors"] += 1
            continue

        stats["markets_closed"] += 1
        logger.info(
            "market_auto_closed",
            market_id=market.id,
            market_name=market.name,
            market_type=market.market_type,
            scheduled_close_time=market.close_time.isoformat(),
            old_status=MarketStatus.OPEN.value,
            new_status=MarketStatus.CLOSED.value,
            closed_at=datetime.now(timezone.utc).isoformat(),
        )

    logger.info("market_auto_close_complete", **stats)
    return stats


class MarketAutoCloseScheduler:
    """
    In-process polling loop around close_expired_markets.

    One instance owns at most one active loop. Create it once at process
    startup and hand it to whoever needs to stop it.
    """

    def __init__(
        self,
        store: MarketStore,
        interval_seconds: float = CHECK_INTERVAL_SECONDS,
    ):
        self._store = store
        self._interval_seconds = interval_seconds
        self._scheduler: AsyncIOScheduler | None = None
        self._in_flight: set[asyncio.Task] = set()
        self.last_stats: dict[str, Any] | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> bool:
        """
        Start polling; the first tick runs immediately.

        Must be called from a running event loop. Returns False (and
        changes nothing) when already running.
        """
        if self._scheduler is not None:
            logger.info("market_auto_close_scheduler_already_running")
            return False

        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(
            self._run_tick,
            "interval",
            seconds=self._interval_seconds,
            id=JOB_ID,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler

        logger.info(
            "market_auto_close_scheduler_started",
            interval_seconds=self._interval_seconds,
        )
        return True

    def stop(self) -> bool:
        """
        Stop scheduling ticks. A tick already in flight runs to completion.

        Returns False when the scheduler was not running.
        """
        if self._scheduler is None:
            return False

        scheduler, self._scheduler = self._scheduler, None
        scheduler.shutdown(wait=False)

        logger.info(
            "market_auto_close_scheduler_stopped",
            ticks_in_flight=len(self._in_flight),
        )
        return True

    async def tick(self) -> dict[str, Any]:
        """Run one sweep now."""
        self.last_stats = await close_expired_markets(self._store)
        return self.last_stats

    async def wait_idle(self) -> None:
        """Wait for any in-flight tick to finish."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _run_tick(self) -> None:
        # Shielded so that shutting the scheduler down does not cancel a
        # sweep halfway through.
        task = asyncio.ensure_future(self.tick())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        await asyncio.shield(task)
