"""Celery tasks for WagerClock.

This module configures Celery and registers all periodic tasks.
"""

from celery import Celery

from app.config import get_settings
from app.services.auto_close import CHECK_INTERVAL_SECONDS

settings = get_settings()

# Create Celery application
celery_app = Celery(
    "wagerclock",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.tasks.market_closure",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Task behavior
    task_track_started=True,
    task_time_limit=120,  # 2 minute hard limit
    task_soft_time_limit=90,
    # Result expiration
    result_expires=3600,  # 1 hour
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {}

# The API process runs its own auto-close loop unless told not to; only
# one polling loop should be active per deployment.
if not settings.auto_close_enabled:
    celery_app.conf.beat_schedule["close-expired-markets"] = {
        "task": "app.tasks.market_closure.close_expired_markets_task",
        "schedule": float(CHECK_INTERVAL_SECONDS),
        "options": {"expires": CHECK_INTERVAL_SECONDS - 5},
    }
