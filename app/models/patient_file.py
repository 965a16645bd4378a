"""
Modelo PatientFile: Índice de archivos del paciente.

Los bytes viven en el almacenamiento de objetos; la fila es el índice y
se conserva aunque el almacenamiento falle (URL de respaldo).
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, utcnow


class StorageStatus(str, enum.Enum):
    """Resultado de la subida al almacenamiento."""
    STORED = "stored"            # subido, file_url es la URL pública
    DATA_URL = "data_url"        # fallo de subida, bytes embebidos en file_url
    PLACEHOLDER = "placeholder"  # fallo de subida, referencia local:// sin resolver


class PatientFile(Base):
    __tablename__ = "patient_files"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id"), nullable=False
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False
    )

    # ── Metadata del archivo ─────────────────────────
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str | None] = mapped_column(String(100))
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    file_path: Mapped[str] = mapped_column(
        String(500), nullable=False,
        comment="{patient_id}/{epoch_ms}_{nombre_saneado}"
    )
    file_url: Mapped[str | None] = mapped_column(
        Text, comment="URL pública, data URL o referencia local://"
    )
    storage_status: Mapped[StorageStatus] = mapped_column(
        Enum(StorageStatus), nullable=False, default=StorageStatus.STORED
    )

    uploaded_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id")
    )
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    # ── Relaciones ───────────────────────────────────
    uploader: Mapped["Profile | None"] = relationship(  # noqa: F821
        "Profile", foreign_keys=[uploaded_by]
    )

    __table_args__ = (
        Index("idx_patient_file_patient", "patient_id", "uploaded_at"),
    )

    @property
    def uploader_type(self) -> str:
        """'patient' si lo subió el propio paciente, 'staff' en otro caso."""
        if self.uploaded_by is not None and self.uploaded_by == self.patient_id:
            return "patient"
        return "staff"

    def __repr__(self) -> str:
        return f"<PatientFile {self.file_name} [{self.storage_status.value}]>"
