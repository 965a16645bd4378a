"""
Configuración de Celery para tareas asíncronas.
"""

from celery import Celery
from celery.schedules import crontab

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "clinica_dental",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.tasks.queue_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

# ── Celery Beat ──────────────────────────────────────
celery_app.conf.beat_schedule = {
    "close-stale-queue-entries": {
        "task": "queue.close_stale_entries",
        "schedule": crontab(
            hour=settings.QUEUE_CLOSE_HOUR,
            minute=settings.QUEUE_CLOSE_MINUTE,
        ),
    },
}
