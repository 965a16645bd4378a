"""
Endpoints del odontograma: documento completo, ediciones por lote,
resumen para la ficha del paciente y vista de impresión.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import ensure_patient_access, require_permission
from app.database import get_db
from app.models.profile import Profile
from app.schemas.dental_chart import (
    ChartEditBatch,
    DentalChartDocument,
    DentalChartPrintView,
    DentalChartResponse,
    DentalChartSummary,
)
from app.services import dental_chart_service

router = APIRouter()


def _get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.get("/patient/{patient_id}", response_model=DentalChartResponse)
async def get_chart(
    patient_id: UUID,
    user: Profile = Depends(require_permission("dental_chart", "read")),
    db: AsyncSession = Depends(get_db),
):
    """
    Documento del odontograma. Si el paciente aún no tiene uno,
    retorna el documento vacío con `exists=false`.
    """
    return await dental_chart_service.get_chart(db, user.clinic_id, patient_id)


@router.put("/patient/{patient_id}", response_model=DentalChartResponse)
async def save_chart(
    patient_id: UUID,
    data: DentalChartDocument,
    request: Request,
    user: Profile = Depends(require_permission("dental_chart", "write")),
    db: AsyncSession = Depends(get_db),
):
    """Guarda el documento completo (crea o reemplaza)."""
    return await dental_chart_service.save_chart(
        db, user, patient_id, data, ip_address=_get_client_ip(request)
    )


@router.patch("/patient/{patient_id}", response_model=DentalChartResponse)
async def edit_chart(
    patient_id: UUID,
    data: ChartEditBatch,
    request: Request,
    user: Profile = Depends(require_permission("dental_chart", "write")),
    db: AsyncSession = Depends(get_db),
):
    """
    Aplica un lote de ediciones del editor:
    - `set_symbol`: símbolo de la leyenda en un diente (vacío limpia)
    - `set_flag`: casilla de una sección
    - `set_answer`: respuesta del historial dental
    """
    return await dental_chart_service.edit_chart(
        db, user, patient_id, data.edits, ip_address=_get_client_ip(request)
    )


@router.get("/patient/{patient_id}/summary", response_model=DentalChartSummary)
async def get_summary(
    patient_id: UUID,
    user: Profile = Depends(require_permission("dental_chart", "read_summary")),
    db: AsyncSession = Depends(get_db),
):
    """Resumen del odontograma. Un paciente solo puede ver el suyo."""
    ensure_patient_access(user, patient_id)
    return await dental_chart_service.get_summary(db, user.clinic_id, patient_id)


@router.get("/patient/{patient_id}/print", response_model=DentalChartPrintView)
async def get_print_view(
    patient_id: UUID,
    user: Profile = Depends(require_permission("dental_chart", "read")),
    db: AsyncSession = Depends(get_db),
):
    """Estructura del formulario impreso del odontograma."""
    return await dental_chart_service.get_print_view(db, user.clinic_id, patient_id)
