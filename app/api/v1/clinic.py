"""
Endpoints de configuracion de clinica.
GET/PUT para datos de la clinica del usuario autenticado.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, require_role
from app.core.exceptions import NotFoundException
from app.database import get_db
from app.models.clinic import Clinic
from app.models.profile import Profile, UserRole
from app.schemas.clinic import ClinicResponse, ClinicUpdate
from app.services.audit_service import log_action

router = APIRouter()


async def _get_clinic(db: AsyncSession, user: Profile) -> Clinic:
    result = await db.execute(
        select(Clinic).where(Clinic.id == user.clinic_id)
    )
    clinic = result.scalar_one_or_none()
    if not clinic:
        raise NotFoundException("Clínica")
    return clinic


@router.get("/me", response_model=ClinicResponse)
async def get_my_clinic(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Retorna los datos de la clinica del usuario autenticado."""
    return await _get_clinic(db, user)


@router.put("/me", response_model=ClinicResponse)
async def update_my_clinic(
    data: ClinicUpdate,
    request: Request,
    user: Profile = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """
    Formulario de informacion de la clinica.
    Solo accesible para admin; se guarda de forma independiente del perfil.
    """
    clinic = await _get_clinic(db, user)

    update_data = data.model_dump(exclude_unset=True)
    old_data = {field: getattr(clinic, field) for field in update_data}
    for field, value in update_data.items():
        setattr(clinic, field, value)

    await db.flush()
    await db.refresh(clinic)

    await log_action(
        db,
        clinic_id=clinic.id,
        user_id=user.id,
        entity="clinic",
        entity_id=str(clinic.id),
        action="update",
        old_data=old_data,
        new_data=update_data,
        ip_address=request.client.host if request.client else None,
    )
    return clinic
