"""Market auto-close task.

Celery entry point for the auto-close sweep, for deployments that run the
sweep from Celery beat instead of the API process. Same semantics as the
in-process scheduler: every OPEN market whose close time has passed is
moved to CLOSED, and per-market failures are logged and skipped.
"""

import asyncio
from typing import Any

import structlog
from celery import shared_task

from app.models.base import get_task_session
from app.services.auto_close import close_expired_markets
from app.services.storage import SqlMarketStore

logger = structlog.get_logger(__name__)


@shared_task(name="app.tasks.market_closure.close_expired_markets_task", queue="markets")
def close_expired_markets_task() -> dict[str, Any]:
    """
    Celery task to close markets past their close time.

    Runs every minute from beat when the in-process scheduler is disabled.
    """
    async def _run():
        async with get_task_session() as session_factory:
            return await close_expired_markets(SqlMarketStore(session_factory))

    stats = asyncio.run(_run())
    logger.info("close_expired_markets_task_complete", **stats)
    return stats
