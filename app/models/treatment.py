"""
Modelo Treatment: Historial de tratamientos del paciente.

Las ediciones sobrescriben el registro; no se guarda historial de cambios
(el audit log conserva el snapshot anterior).
"""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, SmallInteger, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, utcnow


class Procedure(str, enum.Enum):
    """Procedimientos disponibles en el formulario de tratamiento."""
    CLEANING = "Cleaning"
    FILLING = "Filling"
    EXTRACTION = "Extraction"
    ROOT_CANAL = "Root Canal"
    CROWN = "Crown"
    BRIDGE = "Bridge"
    IMPLANT = "Implant"
    WHITENING = "Whitening"
    ORTHODONTICS = "Orthodontics"
    CONSULTATION = "Consultation"
    X_RAY = "X-Ray"
    OTHER = "Other"


class Treatment(Base):
    __tablename__ = "treatments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id"), nullable=False
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False
    )
    doctor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id")
    )

    # ── Datos clínicos ───────────────────────────────
    procedure: Mapped[Procedure] = mapped_column(Enum(Procedure), nullable=False)
    tooth_number: Mapped[int | None] = mapped_column(
        SmallInteger, comment="Numeración universal 1-32"
    )
    diagnosis: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(String(500))
    treatment_date: Mapped[date] = mapped_column(Date, nullable=False)

    # ── Timestamps ───────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # ── Relaciones ───────────────────────────────────
    patient: Mapped["Profile"] = relationship(  # noqa: F821
        "Profile", foreign_keys=[patient_id]
    )
    doctor: Mapped["Profile | None"] = relationship(  # noqa: F821
        "Profile", foreign_keys=[doctor_id]
    )

    __table_args__ = (
        Index("idx_treatment_patient_date", "patient_id", "treatment_date"),
        Index("idx_treatment_clinic", "clinic_id"),
    )

    def __repr__(self) -> str:
        return f"<Treatment {self.procedure.value} tooth={self.tooth_number} ({self.treatment_date})>"
