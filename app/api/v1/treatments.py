"""
Endpoints de tratamientos por paciente.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import ensure_patient_access, require_permission
from app.database import get_db
from app.models.profile import Profile
from app.schemas.treatment import (
    ToothTreatments,
    TreatmentCreate,
    TreatmentResponse,
    TreatmentUpdate,
)
from app.services import treatment_service

router = APIRouter()


def _get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.get("/patient/{patient_id}", response_model=list[TreatmentResponse])
async def list_treatments(
    patient_id: UUID,
    user: Profile = Depends(require_permission("treatment", "read")),
    db: AsyncSession = Depends(get_db),
):
    """Tratamientos del paciente, del más reciente al más antiguo."""
    ensure_patient_access(user, patient_id)
    return await treatment_service.list_treatments(db, user.clinic_id, patient_id)


@router.get("/patient/{patient_id}/by-tooth", response_model=list[ToothTreatments])
async def list_by_tooth(
    patient_id: UUID,
    user: Profile = Depends(require_permission("treatment", "read")),
    db: AsyncSession = Depends(get_db),
):
    """Tratamientos agrupados por diente con el símbolo del odontograma."""
    ensure_patient_access(user, patient_id)
    return await treatment_service.list_by_tooth(db, user.clinic_id, patient_id)


@router.post(
    "/patient/{patient_id}",
    response_model=TreatmentResponse,
    status_code=201,
)
async def create_treatment(
    patient_id: UUID,
    data: TreatmentCreate,
    request: Request,
    user: Profile = Depends(require_permission("treatment", "create")),
    db: AsyncSession = Depends(get_db),
):
    return await treatment_service.create_treatment(
        db, user, patient_id, data, ip_address=_get_client_ip(request)
    )


@router.get("/{treatment_id}", response_model=TreatmentResponse)
async def get_treatment(
    treatment_id: UUID,
    user: Profile = Depends(require_permission("treatment", "read")),
    db: AsyncSession = Depends(get_db),
):
    treatment = await treatment_service.get_treatment(db, user.clinic_id, treatment_id)
    ensure_patient_access(user, treatment.patient_id)
    return treatment


@router.put("/{treatment_id}", response_model=TreatmentResponse)
async def update_treatment(
    treatment_id: UUID,
    data: TreatmentUpdate,
    request: Request,
    user: Profile = Depends(require_permission("treatment", "update")),
    db: AsyncSession = Depends(get_db),
):
    return await treatment_service.update_treatment(
        db, user, treatment_id, data, ip_address=_get_client_ip(request)
    )


@router.delete("/{treatment_id}", status_code=204)
async def delete_treatment(
    treatment_id: UUID,
    request: Request,
    confirm: bool = Query(False, description="Confirmación explícita de la eliminación"),
    user: Profile = Depends(require_permission("treatment", "delete")),
    db: AsyncSession = Depends(get_db),
):
    """Elimina un tratamiento. Sin `confirm=true` responde 422."""
    await treatment_service.delete_treatment(
        db, user, treatment_id, confirm, ip_address=_get_client_ip(request)
    )
