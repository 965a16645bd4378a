"""
Registro de actividad de la cola: en memoria, por clínica, acotado a las
N entradas más recientes (la más nueva primero). No se persiste.

El registro vive en la memoria de cada proceso: con varios workers de
uvicorn cada uno guarda su propia actividad, y un cliente solo ve la del
worker que atiende su request.
"""

from collections import deque
from functools import lru_cache
from uuid import UUID

from app.config import get_settings
from app.database import utcnow
from app.schemas.queue import QueueActivity

ACTION_ADDED = "added to queue"
ACTION_SERVING = "now serving"
ACTION_COMPLETED = "completed"
ACTION_CANCELLED = "cancelled"
ACTION_REMOVED = "removed from queue"


class QueueActivityLog:

    def __init__(self, maxlen: int = 10):
        self.maxlen = maxlen
        self._logs: dict[UUID, deque[QueueActivity]] = {}

    def record(
        self,
        clinic_id: UUID,
        patient_name: str,
        queue_number: int,
        action: str,
    ) -> QueueActivity:
        entry = QueueActivity(
            patient_name=patient_name,
            queue_number=queue_number,
            action=action,
            timestamp=utcnow(),
        )
        log = self._logs.setdefault(clinic_id, deque(maxlen=self.maxlen))
        log.appendleft(entry)
        return entry

    def recent(self, clinic_id: UUID) -> list[QueueActivity]:
        return list(self._logs.get(clinic_id, ()))

    def clear(self) -> None:
        self._logs.clear()


@lru_cache
def get_activity_log() -> QueueActivityLog:
    return QueueActivityLog(maxlen=get_settings().QUEUE_ACTIVITY_LOG_SIZE)
