"""Health check endpoints."""

from datetime import datetime, timezone

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_auto_close_scheduler, get_db, get_redis
from app.config import get_settings
from app.services.auto_close import MarketAutoCloseScheduler

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime


class ReadyCheck(BaseModel):
    """Individual readiness check."""

    status: str
    message: str | None = None


class ReadyResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    checks: dict[str, ReadyCheck]


@router.get("/health", response_model=HealthResponse)
async def health():
    """
    Basic health check.

    Returns healthy if the service is running.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/ready", response_model=ReadyResponse)
async def ready(
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
    scheduler: MarketAutoCloseScheduler | None = Depends(get_auto_close_scheduler),
):
    """
    Readiness check for all dependencies.

    Checks:
    - Database connectivity
    - Redis connectivity
    - Auto-close scheduler running (when enabled in this process)
    """
    checks = {}
    all_ready = True

    # Check database
    try:
        await db.execute(text("SELECT 1"))
        checks["db"] = ReadyCheck(status="ok")
    except Exception as e:
        checks["db"] = ReadyCheck(status="error", message=str(e))
        all_ready = False

    # Check Redis
    try:
        await redis_client.ping()
        checks["redis"] = ReadyCheck(status="ok")
    except Exception as e:
        checks["redis"] = ReadyCheck(status="error", message=str(e))
        all_ready = False

    # Check auto-close scheduler
    settings = get_settings()
    if not settings.auto_close_enabled:
        checks["auto_close"] = ReadyCheck(
            status="ok", message="Disabled in this process (Celery beat)"
        )
    elif scheduler is not None and scheduler.running:
        checks["auto_close"] = ReadyCheck(status="ok", message="Scheduler running")
    else:
        checks["auto_close"] = ReadyCheck(status="error", message="Scheduler not running")
        all_ready = False

    return ReadyResponse(ready=all_ready, checks=checks)
