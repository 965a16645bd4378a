"""
Modelo QueueEntry: Cola de atención del día por sede.

Máquina de estados: waiting → serving → {completed | cancelled}.
A lo sumo una entrada en `serving` por (clínica, sede), garantizado por
el servicio y por un índice único parcial.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, utcnow


class QueueStatus(str, enum.Enum):
    """Estados de una entrada de la cola."""
    WAITING = "waiting"
    SERVING = "serving"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (QueueStatus.WAITING, QueueStatus.SERVING)


# Transiciones válidas de la máquina de estados
VALID_TRANSITIONS: dict[QueueStatus, list[QueueStatus]] = {
    QueueStatus.WAITING: [
        QueueStatus.SERVING,
        QueueStatus.CANCELLED,
    ],
    QueueStatus.SERVING: [
        QueueStatus.COMPLETED,
        QueueStatus.CANCELLED,
    ],
    # Estados terminales: no tienen transiciones
    QueueStatus.COMPLETED: [],
    QueueStatus.CANCELLED: [],
}


def is_valid_transition(current: QueueStatus, new: QueueStatus) -> bool:
    """Verifica si una transición de estado es válida."""
    return new in VALID_TRANSITIONS.get(current, [])


class QueueEntry(Base):
    __tablename__ = "queue"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id"), nullable=False
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False
    )
    branch: Mapped[str] = mapped_column(
        String(100), nullable=False, default="main",
        comment="Sede de atención (ej: Cabugao, San Juan)"
    )

    queue_number: Mapped[int] = mapped_column(
        Integer, nullable=False,
        comment="Correlativo por clínica (max + 1), nunca se reutiliza"
    )
    status: Mapped[QueueStatus] = mapped_column(
        Enum(QueueStatus), nullable=False, default=QueueStatus.WAITING
    )
    estimated_wait_time: Mapped[int] = mapped_column(
        Integer, nullable=False, default=15,
        comment="Minutos estimados de espera"
    )

    # ── Timestamps ───────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # ── Relaciones ───────────────────────────────────
    patient: Mapped["Profile"] = relationship("Profile")  # noqa: F821

    __table_args__ = (
        Index("idx_queue_clinic_branch_status", "clinic_id", "branch", "status"),
        Index("uq_queue_clinic_number", "clinic_id", "queue_number", unique=True),
        # Una sola entrada atendiéndose por sede
        Index(
            "uq_queue_serving_per_branch",
            "clinic_id",
            "branch",
            unique=True,
            postgresql_where=text("status = 'SERVING'"),
            sqlite_where=text("status = 'SERVING'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<QueueEntry #{self.queue_number} [{self.status.value}] {self.branch}>"
