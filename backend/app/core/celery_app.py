"""
Celery application configuration for the moderation service.

Handles background work for:
- Retrying block enforcement that failed after a report was recorded
- Periodic reconciliation of auto_blocked reports with profile flags
"""

from celery import Celery

from app.core.config import get_settings
from app.core.constants import RECONCILE_INTERVAL_SECONDS

settings = get_settings()

celery_app = Celery(
    "chat_moderation",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks.moderation_tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Task execution
    task_track_started=True,
    task_time_limit=300,  # 5 minute hard limit
    task_soft_time_limit=240,  # 4 minute soft limit
    # Result backend
    result_expires=3600,  # Results expire after 1 hour
    # Worker
    worker_prefetch_multiplier=1,  # Fair task distribution
    # Beat schedule for periodic tasks
    beat_schedule={
        "reconcile-blocks": {
            "task": "app.tasks.moderation_tasks.reconcile_blocks",
            "schedule": RECONCILE_INTERVAL_SECONDS,
        },
    },
)
