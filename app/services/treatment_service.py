"""
Servicio de tratamientos: CRUD por paciente y agrupación por diente.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.exceptions import NotFoundException, ValidationException
from app.models.profile import Profile
from app.models.treatment import Treatment
from app.schemas.treatment import (
    ToothTreatments,
    TreatmentCreate,
    TreatmentResponse,
    TreatmentUpdate,
)
from app.services.audit_service import log_action
from app.services.dental_chart_service import get_chart_symbols
from app.services.profile_service import get_patient_profile

logger = logging.getLogger(__name__)


# ── Helpers ──────────────────────────────────────────

def _to_response(treatment: Treatment) -> TreatmentResponse:
    return TreatmentResponse(
        id=treatment.id,
        clinic_id=treatment.clinic_id,
        patient_id=treatment.patient_id,
        doctor_id=treatment.doctor_id,
        doctor_name=treatment.doctor.full_name if treatment.doctor else None,
        procedure=treatment.procedure,
        tooth_number=treatment.tooth_number,
        diagnosis=treatment.diagnosis,
        notes=treatment.notes,
        treatment_date=treatment.treatment_date,
        created_at=treatment.created_at,
        updated_at=treatment.updated_at,
    )


def _snapshot(treatment: Treatment) -> dict:
    return {
        "procedure": treatment.procedure.value,
        "tooth_number": treatment.tooth_number,
        "diagnosis": treatment.diagnosis,
        "notes": treatment.notes,
        "treatment_date": treatment.treatment_date,
    }


async def _get_treatment(
    db: AsyncSession,
    clinic_id: UUID,
    treatment_id: UUID,
) -> Treatment:
    result = await db.execute(
        select(Treatment)
        .options(joinedload(Treatment.doctor))
        .where(
            Treatment.id == treatment_id,
            Treatment.clinic_id == clinic_id,
        )
        .execution_options(populate_existing=True)
    )
    treatment = result.scalar_one_or_none()
    if not treatment:
        raise NotFoundException("Tratamiento")
    return treatment


async def _list_for_patient(
    db: AsyncSession,
    clinic_id: UUID,
    patient_id: UUID,
) -> list[Treatment]:
    result = await db.execute(
        select(Treatment)
        .options(joinedload(Treatment.doctor))
        .where(
            Treatment.patient_id == patient_id,
            Treatment.clinic_id == clinic_id,
        )
        .order_by(Treatment.treatment_date.desc(), Treatment.created_at.desc())
    )
    return list(result.scalars().all())


# ── Listar ───────────────────────────────────────────

async def list_treatments(
    db: AsyncSession,
    clinic_id: UUID,
    patient_id: UUID,
) -> list[TreatmentResponse]:
    """Tratamientos del paciente, del más reciente al más antiguo."""
    await get_patient_profile(db, clinic_id, patient_id)
    treatments = await _list_for_patient(db, clinic_id, patient_id)
    return [_to_response(t) for t in treatments]


async def get_treatment(
    db: AsyncSession,
    clinic_id: UUID,
    treatment_id: UUID,
) -> TreatmentResponse:
    return _to_response(await _get_treatment(db, clinic_id, treatment_id))


async def list_by_tooth(
    db: AsyncSession,
    clinic_id: UUID,
    patient_id: UUID,
) -> list[ToothTreatments]:
    """
    Tratamientos agrupados por diente (ascendente) con el símbolo del
    odontograma. Los registros sin diente van al final con tooth_number=None.
    """
    await get_patient_profile(db, clinic_id, patient_id)
    treatments = await _list_for_patient(db, clinic_id, patient_id)
    symbols = await get_chart_symbols(db, clinic_id, patient_id)

    groups: dict[int | None, list[TreatmentResponse]] = {}
    for treatment in treatments:
        groups.setdefault(treatment.tooth_number, []).append(_to_response(treatment))

    ordered = sorted(
        groups.items(),
        key=lambda item: (item[0] is None, item[0] or 0),
    )
    return [
        ToothTreatments(
            tooth_number=tooth,
            chart_symbol=symbols.get(tooth, "") if tooth is not None else "",
            treatments=items,
        )
        for tooth, items in ordered
    ]


# ── Crear ────────────────────────────────────────────

async def create_treatment(
    db: AsyncSession,
    user: Profile,
    patient_id: UUID,
    data: TreatmentCreate,
    ip_address: str | None = None,
) -> TreatmentResponse:
    """Registra un tratamiento; el doctor es el usuario autenticado."""
    clinic_id = user.clinic_id
    await get_patient_profile(db, clinic_id, patient_id)

    treatment = Treatment(
        clinic_id=clinic_id,
        patient_id=patient_id,
        doctor_id=user.id,
        procedure=data.procedure,
        tooth_number=data.tooth_number,
        diagnosis=data.diagnosis,
        notes=data.notes,
        treatment_date=data.treatment_date,
    )
    db.add(treatment)
    await db.flush()

    await log_action(
        db,
        clinic_id=clinic_id,
        user_id=user.id,
        entity="treatment",
        entity_id=str(treatment.id),
        action="create",
        new_data={**_snapshot(treatment), "patient_id": patient_id},
        ip_address=ip_address,
    )
    logger.info("Tratamiento creado id=%s patient_id=%s", treatment.id, patient_id)

    return _to_response(await _get_treatment(db, clinic_id, treatment.id))


# ── Actualizar ───────────────────────────────────────

async def update_treatment(
    db: AsyncSession,
    user: Profile,
    treatment_id: UUID,
    data: TreatmentUpdate,
    ip_address: str | None = None,
) -> TreatmentResponse:
    """Sobrescribe el registro completo (sin historial de versiones)."""
    treatment = await _get_treatment(db, user.clinic_id, treatment_id)
    old_data = _snapshot(treatment)

    for field, value in data.model_dump().items():
        setattr(treatment, field, value)
    await db.flush()

    await log_action(
        db,
        clinic_id=user.clinic_id,
        user_id=user.id,
        entity="treatment",
        entity_id=str(treatment.id),
        action="update",
        old_data=old_data,
        new_data=_snapshot(treatment),
        ip_address=ip_address,
    )

    return _to_response(await _get_treatment(db, user.clinic_id, treatment.id))


# ── Eliminar ─────────────────────────────────────────

async def delete_treatment(
    db: AsyncSession,
    user: Profile,
    treatment_id: UUID,
    confirm: bool,
    ip_address: str | None = None,
) -> None:
    """Elimina un tratamiento. Requiere confirmación explícita."""
    if not confirm:
        raise ValidationException(
            "Confirme la eliminación del tratamiento (confirm=true)"
        )

    treatment = await _get_treatment(db, user.clinic_id, treatment_id)
    old_data = {**_snapshot(treatment), "patient_id": treatment.patient_id}

    await db.delete(treatment)
    await db.flush()

    await log_action(
        db,
        clinic_id=user.clinic_id,
        user_id=user.id,
        entity="treatment",
        entity_id=str(treatment_id),
        action="delete",
        old_data=old_data,
        ip_address=ip_address,
    )
    logger.info("Tratamiento eliminado id=%s by=%s", treatment_id, user.id)
