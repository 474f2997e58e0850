"""WagerClock FastAPI application.

Market lifecycle scheduler and wager valuation service. The application
lifespan owns the auto-close scheduler: started once at startup, stopped
once at shutdown.
"""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from app.api.routes import config, health, markets, wagers
from app.config import Settings, get_settings
from app.models.base import async_session_factory, engine, init_models
from app.services.auto_close import MarketAutoCloseScheduler
from app.services.storage import SqlMarketStore


def configure_logging(settings: Settings) -> None:
    """Configure structlog on top of stdlib logging. Call once at startup."""
    logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


settings = get_settings()
configure_logging(settings)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("starting_wagerclock", version="0.1.0")
    await init_models(engine)

    scheduler = None
    if settings.auto_close_enabled:
        scheduler = MarketAutoCloseScheduler(SqlMarketStore(async_session_factory))
        scheduler.start()
    app.state.auto_close_scheduler = scheduler

    yield

    if scheduler is not None:
        scheduler.stop()
        await scheduler.wait_idle()
    await engine.dispose()
    logger.info("shutting_down_wagerclock")


# Create FastAPI application
app = FastAPI(
    title="WagerClock",
    description="Market auto-close scheduler and wager valuation service",
    version="0.1.0",
    lifespan=lifespan,
)

# Include API routers
app.include_router(health.router)
app.include_router(markets.router)
app.include_router(wagers.router)
app.include_router(config.router)
