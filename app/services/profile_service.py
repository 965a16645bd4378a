"""
Servicio de perfiles: formulario de perfil propio y directorio de pacientes.
"""

import logging
import math
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.models.profile import Profile, UserRole
from app.schemas.profile import (
    PatientListResponse,
    PatientSummary,
    ProfileUpdate,
)
from app.services.audit_service import log_action

logger = logging.getLogger(__name__)


# ── Helpers ──────────────────────────────────────────

async def get_patient_profile(
    db: AsyncSession,
    clinic_id: UUID,
    patient_id: UUID,
) -> Profile:
    """Carga un paciente de la clínica o lanza 404."""
    result = await db.execute(
        select(Profile).where(
            Profile.id == patient_id,
            Profile.clinic_id == clinic_id,
            Profile.role == UserRole.PATIENT,
        )
    )
    patient = result.scalar_one_or_none()
    if not patient:
        raise NotFoundException("Paciente")
    return patient


# ── Perfil propio ────────────────────────────────────

async def update_own_profile(
    db: AsyncSession,
    user: Profile,
    data: ProfileUpdate,
    ip_address: str | None = None,
) -> Profile:
    """
    Guarda el formulario de perfil del usuario autenticado.
    Un email ya usado por otra cuenta → 409.
    """
    if data.email != user.email:
        existing = await db.execute(
            select(Profile.id).where(
                Profile.email == data.email,
                Profile.id != user.id,
            )
        )
        if existing.scalar_one_or_none():
            raise ConflictException("Ya existe un usuario con ese email")

    update_data = data.model_dump(exclude_unset=True)
    old_data = {field: getattr(user, field) for field in update_data}

    for field, value in update_data.items():
        setattr(user, field, value)

    await db.flush()

    await log_action(
        db,
        clinic_id=user.clinic_id,
        user_id=user.id,
        entity="profile",
        entity_id=str(user.id),
        action="update",
        old_data=old_data,
        new_data=update_data,
        ip_address=ip_address,
    )
    logger.info("Perfil actualizado user_id=%s campos=%s", user.id, list(update_data))
    return user


# ── Directorio de pacientes ──────────────────────────

async def list_patients(
    db: AsyncSession,
    clinic_id: UUID,
    *,
    page: int = 1,
    size: int = 20,
    search: str | None = None,
) -> PatientListResponse:
    """Lista pacientes de la clínica con búsqueda por nombre, email o teléfono."""
    query = select(Profile).where(
        Profile.clinic_id == clinic_id,
        Profile.role == UserRole.PATIENT,
        Profile.is_active.is_(True),
    )

    if search:
        search_term = f"%{search.strip().lower()}%"
        query = query.where(
            or_(
                func.lower(Profile.full_name).like(search_term),
                func.lower(Profile.email).like(search_term),
                Profile.phone.like(search_term),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * size
    query = query.order_by(Profile.full_name).offset(offset).limit(size)
    result = await db.execute(query)
    patients = result.scalars().all()

    return PatientListResponse(
        items=[PatientSummary.model_validate(p) for p in patients],
        total=total,
        page=page,
        size=size,
        pages=math.ceil(total / size) if total > 0 else 0,
    )
