"""
Servicio de archivos de pacientes.

- Subida: la fila del índice se inserta siempre; si el almacenamiento
  falla se guarda una URL de respaldo (data URL o referencia local://).
- Descarga: cadena de métodos en orden, el primero que funciona gana y
  cada fallo queda en la transcripción de diagnóstico.
- Eliminación: el borrado en el almacenamiento es best-effort; la fila
  se elimina siempre.
"""

import base64
import binascii
import logging
import re
import time
from urllib.parse import quote, unquote_to_bytes
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import ensure_patient_access
from app.config import get_settings
from app.core.exceptions import NotFoundException, ValidationException
from app.models.patient_file import PatientFile, StorageStatus
from app.models.profile import Profile
from app.schemas.patient_file import (
    PatientFileDeleteResponse,
    PatientFileResponse,
    PatientFileUploadResponse,
)
from app.services.audit_service import log_action
from app.services.profile_service import get_patient_profile
from app.storage.base import ObjectStorage, StorageError
from app.storage.fetcher import FileFetcher

logger = logging.getLogger(__name__)
settings = get_settings()

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
PLACEHOLDER_SCHEME = "local://files/"


# ── Cache en memoria ─────────────────────────────────
# Formato: {file_id: {"data": (bytes, content_type), "timestamp": float}}
_cache: dict[str, dict] = {}


def _cache_get(key: str) -> tuple[bytes, str | None] | None:
    """Obtiene un archivo del cache si existe y no ha expirado."""
    entry = _cache.get(key)
    if entry is None:
        return None
    if time.time() - entry["timestamp"] > settings.FILE_CACHE_TTL_SECONDS:
        del _cache[key]
        return None
    return entry["data"]


def _cache_set(key: str, data: tuple[bytes, str | None]) -> None:
    """Guarda un archivo en el cache."""
    _cache[key] = {"data": data, "timestamp": time.time()}


def _cache_invalidate(key: str) -> None:
    _cache.pop(key, None)


def clear_cache() -> None:
    _cache.clear()


# ── Rutas y URLs de respaldo ─────────────────────────

def sanitize_file_name(name: str) -> str:
    """Conserva solo [A-Za-z0-9._-]; el resto se reemplaza por '_'."""
    return _UNSAFE_CHARS.sub("_", name)


def content_disposition(file_name: str) -> str:
    """
    Header de descarga con nombre ASCII saneado y la forma RFC 5987
    (filename*) con el nombre original en UTF-8.
    """
    return (
        f'attachment; filename="{sanitize_file_name(file_name)}"; '
        f"filename*=UTF-8''{quote(file_name, safe='')}"
    )


def ensure_upload_size(size: int) -> None:
    if size > settings.MAX_UPLOAD_BYTES:
        raise ValidationException(
            f"El archivo excede el tamaño máximo de {settings.MAX_UPLOAD_BYTES // (1024 * 1024)} MB"
        )


def build_storage_path(patient_id: UUID, file_name: str, now_ms: int | None = None) -> str:
    """{patient_id}/{epoch_ms}_{nombre_saneado}"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{patient_id}/{now_ms}_{sanitize_file_name(file_name)}"


def build_fallback_url(
    path: str,
    content: bytes,
    content_type: str | None,
) -> tuple[str, StorageStatus]:
    """
    URL de respaldo cuando la subida falla: data URL para texto o imagen
    pequeños, referencia local:// (no resoluble) en otro caso.
    """
    file_type = content_type or "application/octet-stream"
    embeddable = "text" in file_type or "image" in file_type
    if embeddable and len(content) < settings.DATA_URL_MAX_BYTES:
        encoded = base64.b64encode(content).decode("ascii")
        return f"data:{file_type};base64,{encoded}", StorageStatus.DATA_URL
    return f"{PLACEHOLDER_SCHEME}{path}", StorageStatus.PLACEHOLDER


def decode_data_url(url: str) -> tuple[bytes, str | None]:
    """Decodifica una data URL (base64 o percent-encoded)."""
    header, sep, payload = url.partition(",")
    if not header.startswith("data:") or not sep:
        raise ValueError("data URL mal formada")
    meta = header[len("data:"):]
    is_base64 = meta.endswith(";base64")
    content_type = (meta[: -len(";base64")] if is_base64 else meta) or None
    if is_base64:
        try:
            return base64.b64decode(payload, validate=True), content_type
        except binascii.Error as exc:
            raise ValueError(f"base64 inválido: {exc}")
    return unquote_to_bytes(payload), content_type


# ── Helpers ──────────────────────────────────────────

async def _get_file(
    db: AsyncSession,
    user: Profile,
    file_id: UUID,
) -> PatientFile:
    result = await db.execute(
        select(PatientFile).where(
            PatientFile.id == file_id,
            PatientFile.clinic_id == user.clinic_id,
        )
    )
    patient_file = result.scalar_one_or_none()
    if not patient_file:
        raise NotFoundException("Archivo")
    ensure_patient_access(user, patient_file.patient_id)
    return patient_file


# ── Subir ────────────────────────────────────────────

async def upload_file(
    db: AsyncSession,
    storage: ObjectStorage,
    user: Profile,
    patient_id: UUID,
    *,
    file_name: str,
    content_type: str | None,
    content: bytes,
    ip_address: str | None = None,
) -> PatientFileUploadResponse:
    """
    Sube el archivo y registra la fila del índice.
    Un fallo del almacenamiento no impide registrar la fila.
    """
    if not file_name:
        raise ValidationException("El archivo no tiene nombre")
    ensure_upload_size(len(content))

    clinic_id = user.clinic_id
    await get_patient_profile(db, clinic_id, patient_id)

    path = build_storage_path(patient_id, file_name)
    warning = None
    try:
        await storage.upload(path, content, content_type)
        file_url = storage.get_public_url(path)
        status = StorageStatus.STORED
    except StorageError as exc:
        file_url, status = build_fallback_url(path, content, content_type)
        warning = f"No se pudo subir al almacenamiento ({exc.message}); se registró con respaldo {status.value}"
        logger.warning(
            "Subida fallida path=%s error=%s; respaldo=%s", path, exc, status.value
        )

    patient_file = PatientFile(
        clinic_id=clinic_id,
        patient_id=patient_id,
        file_name=file_name,
        file_type=content_type,
        file_size=len(content),
        file_path=path,
        file_url=file_url,
        storage_status=status,
        uploaded_by=user.id,
    )
    db.add(patient_file)
    await db.flush()

    await log_action(
        db,
        clinic_id=clinic_id,
        user_id=user.id,
        entity="patient_file",
        entity_id=str(patient_file.id),
        action="upload",
        new_data={
            "patient_id": patient_id,
            "file_name": file_name,
            "file_size": len(content),
            "storage_status": status.value,
        },
        ip_address=ip_address,
    )

    response = PatientFileResponse.model_validate(patient_file)
    return PatientFileUploadResponse(**response.model_dump(), warning=warning)


# ── Listar ───────────────────────────────────────────

async def list_files(
    db: AsyncSession,
    clinic_id: UUID,
    patient_id: UUID,
) -> list[PatientFileResponse]:
    """Archivos del paciente, los más recientes primero."""
    await get_patient_profile(db, clinic_id, patient_id)
    result = await db.execute(
        select(PatientFile)
        .where(
            PatientFile.patient_id == patient_id,
            PatientFile.clinic_id == clinic_id,
        )
        .order_by(PatientFile.uploaded_at.desc())
    )
    return [PatientFileResponse.model_validate(f) for f in result.scalars().all()]


# ── Resolver contenido ───────────────────────────────

class ResolvedFile:
    """Contenido obtenido por la cadena de descarga."""

    def __init__(
        self,
        file: PatientFile,
        method: str,
        content: bytes,
        content_type: str | None,
        transcript: list[str],
    ):
        self.file = file
        self.method = method
        self.content = content
        self.content_type = content_type
        self.transcript = transcript


async def resolve_file(
    db: AsyncSession,
    storage: ObjectStorage,
    fetcher: FileFetcher,
    user: Profile,
    file_id: UUID,
) -> ResolvedFile:
    """
    Obtiene los bytes del archivo probando, en orden: cache, data URL
    embebida, descarga directa, URL firmada, URL pública, URL almacenada
    (con parámetro anti-cache) y descarga cruda de la URL almacenada.
    """
    patient_file = await _get_file(db, user, file_id)
    cache_key = str(patient_file.id)
    file_url = patient_file.file_url or ""
    is_http = file_url.startswith(("http://", "https://"))
    transcript: list[str] = []

    def _done(method: str, content: bytes, content_type: str | None) -> ResolvedFile:
        content_type = patient_file.file_type or content_type
        transcript.append(f"{method}: OK ({len(content)} bytes)")
        if method != "cache" and len(content) < settings.FILE_CACHE_MAX_BYTES:
            _cache_set(cache_key, (content, content_type))
        logger.info("Archivo %s resuelto por %s", cache_key, method)
        return ResolvedFile(patient_file, method, content, content_type, transcript)

    # 1. Cache local
    cached = _cache_get(cache_key)
    if cached is not None:
        return _done("cache", *cached)
    transcript.append("cache: sin entrada")

    # 2. Data URL embebida
    if file_url.startswith("data:"):
        try:
            return _done("data_url", *decode_data_url(file_url))
        except ValueError as exc:
            transcript.append(f"data_url: error ({exc})")
    else:
        transcript.append("data_url: no aplica")

    # 3. Descarga directa del almacenamiento
    try:
        content = await storage.download(patient_file.file_path)
        return _done("download", content, None)
    except StorageError as exc:
        transcript.append(f"download: error ({exc})")

    # 4. URL firmada
    try:
        signed_url = await storage.create_signed_url(
            patient_file.file_path, settings.SIGNED_URL_TTL_SECONDS
        )
        return _done("signed_url", *(await fetcher.fetch(signed_url)))
    except StorageError as exc:
        transcript.append(f"signed_url: error ({exc})")

    # 5. URL pública con parámetro anti-cache
    try:
        public_url = storage.get_public_url(patient_file.file_path)
        return _done(
            "public_url",
            *(await fetcher.fetch(public_url, params={"t": int(time.time() * 1000)})),
        )
    except StorageError as exc:
        transcript.append(f"public_url: error ({exc})")

    # 6. URL almacenada con parámetro anti-cache
    if is_http:
        try:
            return _done(
                "stored_url",
                *(await fetcher.fetch(file_url, params={"t": int(time.time() * 1000)})),
            )
        except StorageError as exc:
            transcript.append(f"stored_url: error ({exc})")

        # 7. Descarga cruda de la URL almacenada
        try:
            return _done("raw_fetch", *(await fetcher.fetch(file_url)))
        except StorageError as exc:
            transcript.append(f"raw_fetch: error ({exc})")
    else:
        transcript.append("stored_url: no es una URL http(s)")
        transcript.append("raw_fetch: no es una URL http(s)")

    logger.warning("No se pudo resolver el archivo %s: %s", cache_key, transcript)
    raise NotFoundException(
        "Archivo",
        {
            "message": "No se pudo obtener el contenido del archivo por ningún método",
            "transcript": transcript,
        },
    )


# ── Eliminar ─────────────────────────────────────────

async def delete_file(
    db: AsyncSession,
    storage: ObjectStorage,
    user: Profile,
    file_id: UUID,
    ip_address: str | None = None,
) -> PatientFileDeleteResponse:
    """
    Elimina el objeto del almacenamiento (best-effort) y siempre la fila.
    """
    patient_file = await _get_file(db, user, file_id)
    storage_removed = False
    warning = None

    if patient_file.storage_status == StorageStatus.STORED:
        try:
            await storage.remove(patient_file.file_path)
            storage_removed = True
        except StorageError as exc:
            warning = f"No se pudo eliminar del almacenamiento: {exc.message}"
            logger.warning(
                "Eliminación en almacenamiento fallida path=%s error=%s",
                patient_file.file_path, exc,
            )

    old_data = {
        "patient_id": patient_file.patient_id,
        "file_name": patient_file.file_name,
        "file_path": patient_file.file_path,
    }
    await db.delete(patient_file)
    await db.flush()
    _cache_invalidate(str(file_id))

    await log_action(
        db,
        clinic_id=user.clinic_id,
        user_id=user.id,
        entity="patient_file",
        entity_id=str(file_id),
        action="delete",
        old_data=old_data,
        new_data={"storage_removed": storage_removed},
        ip_address=ip_address,
    )

    return PatientFileDeleteResponse(
        id=file_id,
        storage_removed=storage_removed,
        warning=warning,
    )
