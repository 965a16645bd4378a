"""
Endpoints de perfiles: formulario de perfil propio y directorio de pacientes.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, require_permission
from app.database import get_db
from app.models.profile import Profile
from app.schemas.profile import PatientListResponse, ProfileResponse, ProfileUpdate
from app.services import profile_service

router = APIRouter()


def _get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(user: Profile = Depends(get_current_user)):
    """Perfil del usuario autenticado."""
    return user


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    data: ProfileUpdate,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Guarda el formulario de perfil.
    Email ya registrado por otra cuenta → 409.
    """
    return await profile_service.update_own_profile(
        db, user, data, ip_address=_get_client_ip(request)
    )


@router.get("/patients", response_model=PatientListResponse)
async def list_patients(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    search: str | None = Query(None, description="Buscar por nombre, email o teléfono"),
    user: Profile = Depends(require_permission("profile", "read")),
    db: AsyncSession = Depends(get_db),
):
    """Directorio de pacientes de la clínica (personal)."""
    return await profile_service.list_patients(
        db, user.clinic_id, page=page, size=size, search=search
    )


@router.get("/{patient_id}", response_model=ProfileResponse)
async def get_patient(
    patient_id: UUID,
    user: Profile = Depends(require_permission("profile", "read")),
    db: AsyncSession = Depends(get_db),
):
    """Perfil completo de un paciente de la clínica."""
    return await profile_service.get_patient_profile(db, user.clinic_id, patient_id)
