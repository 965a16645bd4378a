"""
Schemas para PatientFile: índice de archivos y resolución de descargas.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from app.models.patient_file import StorageStatus


class PatientFileResponse(BaseModel):
    id: UUID
    patient_id: UUID
    file_name: str
    file_type: str | None = None
    file_size: int
    file_path: str
    file_url: str | None = None
    storage_status: StorageStatus
    uploaded_by: UUID | None = None
    uploader_type: str
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class PatientFileUploadResponse(PatientFileResponse):
    warning: str | None = None


class PatientFileResolveResponse(BaseModel):
    """Resultado de la cadena de descarga, con su transcripción."""
    file_id: UUID
    method: str
    content_type: str | None = None
    size: int
    transcript: list[str]


class PatientFileDeleteResponse(BaseModel):
    id: UUID
    storage_removed: bool
    warning: str | None = None
