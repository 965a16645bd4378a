"""
Schemas para la cola de atención.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.queue_entry import QueueStatus


class QueueEnqueue(BaseModel):
    patient_id: UUID
    branch: str | None = Field(None, min_length=1, max_length=100)


class QueueEntryResponse(BaseModel):
    id: UUID
    patient_id: UUID
    patient_name: str | None = None
    branch: str
    queue_number: int
    status: QueueStatus
    estimated_wait_time: int
    wait_minutes: int
    created_at: datetime
    updated_at: datetime


class QueueActivity(BaseModel):
    patient_name: str
    queue_number: int
    action: str
    timestamp: datetime


class QueueBoardResponse(BaseModel):
    """
    Tablero de la cola. Sin sede se muestran todas, por eso `serving`
    es una lista (a lo sumo una entrada por sede).
    """
    branch: str | None = None
    serving: list[QueueEntryResponse]
    waiting: list[QueueEntryResponse]
    activity: list[QueueActivity]


class QueueCallResponse(BaseModel):
    """Resultado de llamar a un paciente (y el que se completó antes)."""
    serving: QueueEntryResponse
    completed: QueueEntryResponse | None = None
