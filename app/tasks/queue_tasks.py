"""
Tareas Celery de mantenimiento de la cola de atención.
"""

import asyncio
import logging
from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

from app.config import get_settings
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)
settings = get_settings()


def start_of_local_day(now: datetime | None = None) -> datetime:
    """Inicio del día actual en la zona horaria de la clínica, en UTC."""
    tz = ZoneInfo(settings.CELERY_TIMEZONE)
    local_now = (now or datetime.now(timezone.utc)).astimezone(tz)
    local_start = datetime.combine(local_now.date(), time.min, tzinfo=tz)
    return local_start.astimezone(timezone.utc)


@celery_app.task(name="queue.close_stale_entries")
def close_stale_entries_task():
    """
    Task periódico (cron): cierra las entradas que quedaron abiertas de
    días anteriores. En espera → cancelled, en atención → completed.
    """
    async def _process() -> int:
        from app.database import async_session_factory
        from app.services.queue_service import close_stale_entries

        cutoff = start_of_local_day()
        async with async_session_factory() as db:
            closed = await close_stale_entries(db, cutoff)
            await db.commit()
        return closed

    closed = asyncio.run(_process())
    logger.info("Cola: %d entradas de días anteriores cerradas", closed)
    return closed
