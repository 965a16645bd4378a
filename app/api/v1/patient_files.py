"""
Endpoints de archivos del paciente: subida, índice, descarga con
cadena de respaldo y eliminación.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import ensure_patient_access, require_permission
from app.database import get_db
from app.models.profile import Profile
from app.schemas.patient_file import (
    PatientFileDeleteResponse,
    PatientFileResolveResponse,
    PatientFileResponse,
    PatientFileUploadResponse,
)
from app.services import patient_file_service
from app.storage.base import ObjectStorage
from app.storage.dependencies import get_fetcher, get_storage
from app.storage.fetcher import FileFetcher

router = APIRouter()


def _get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.post(
    "/patient/{patient_id}",
    response_model=PatientFileUploadResponse,
    status_code=201,
)
async def upload_file(
    patient_id: UUID,
    request: Request,
    file: UploadFile = File(...),
    user: Profile = Depends(require_permission("patient_file", "upload")),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    """
    Sube un archivo del paciente. Si el almacenamiento falla, el archivo
    queda registrado con una URL de respaldo y se incluye `warning`.
    """
    ensure_patient_access(user, patient_id)
    if file.size is not None:
        patient_file_service.ensure_upload_size(file.size)
    # Nunca se lee más de un byte por encima del límite
    content = await file.read(patient_file_service.settings.MAX_UPLOAD_BYTES + 1)
    return await patient_file_service.upload_file(
        db,
        storage,
        user,
        patient_id,
        file_name=file.filename or "archivo",
        content_type=file.content_type,
        content=content,
        ip_address=_get_client_ip(request),
    )


@router.get("/patient/{patient_id}", response_model=list[PatientFileResponse])
async def list_files(
    patient_id: UUID,
    user: Profile = Depends(require_permission("patient_file", "read")),
    db: AsyncSession = Depends(get_db),
):
    ensure_patient_access(user, patient_id)
    return await patient_file_service.list_files(db, user.clinic_id, patient_id)


@router.get("/{file_id}/content")
async def download_file(
    file_id: UUID,
    user: Profile = Depends(require_permission("patient_file", "read")),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    fetcher: FileFetcher = Depends(get_fetcher),
):
    """Bytes del archivo; el método usado se informa en `X-File-Method`."""
    resolved = await patient_file_service.resolve_file(db, storage, fetcher, user, file_id)
    return Response(
        content=resolved.content,
        media_type=resolved.content_type or "application/octet-stream",
        headers={
            "Content-Disposition": patient_file_service.content_disposition(
                resolved.file.file_name
            ),
            "X-File-Method": resolved.method,
        },
    )


@router.get("/{file_id}/resolve", response_model=PatientFileResolveResponse)
async def resolve_file(
    file_id: UUID,
    user: Profile = Depends(require_permission("patient_file", "read")),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    fetcher: FileFetcher = Depends(get_fetcher),
):
    """Diagnóstico de la cadena de descarga: método usado y transcripción."""
    resolved = await patient_file_service.resolve_file(db, storage, fetcher, user, file_id)
    return PatientFileResolveResponse(
        file_id=resolved.file.id,
        method=resolved.method,
        content_type=resolved.content_type,
        size=len(resolved.content),
        transcript=resolved.transcript,
    )


@router.delete("/{file_id}", response_model=PatientFileDeleteResponse)
async def delete_file(
    file_id: UUID,
    request: Request,
    user: Profile = Depends(require_permission("patient_file", "delete")),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    return await patient_file_service.delete_file(
        db, storage, user, file_id, ip_address=_get_client_ip(request)
    )
