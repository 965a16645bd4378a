"""
Servicio de la cola de atención: encolar, llamar, completar, cancelar,
tablero por sede y cierre de entradas de días anteriores.

A lo sumo una entrada `serving` por (clínica, sede): al llamar a un
paciente, la entrada que se atendía se completa primero dentro de la
misma transacción (con bloqueo de filas en PostgreSQL).
"""

import logging
import math
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.config import get_settings
from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.database import as_utc, utcnow
from app.models.profile import Profile
from app.models.queue_entry import (
    ACTIVE_STATUSES,
    VALID_TRANSITIONS,
    QueueEntry,
    QueueStatus,
    is_valid_transition,
)
from app.schemas.queue import (
    QueueBoardResponse,
    QueueCallResponse,
    QueueEnqueue,
    QueueEntryResponse,
)
from app.services import queue_activity
from app.services.audit_service import log_action
from app.services.profile_service import get_patient_profile

logger = logging.getLogger(__name__)
settings = get_settings()


# ── Helpers ──────────────────────────────────────────

def wait_minutes(created_at: datetime, now: datetime | None = None) -> int:
    """Minutos completos transcurridos desde que el paciente entró a la cola."""
    now = now or utcnow()
    elapsed = (now - as_utc(created_at)).total_seconds()
    return max(0, math.floor(elapsed / 60))


def _to_response(entry: QueueEntry, now: datetime | None = None) -> QueueEntryResponse:
    return QueueEntryResponse(
        id=entry.id,
        patient_id=entry.patient_id,
        patient_name=entry.patient.full_name if entry.patient else None,
        branch=entry.branch,
        queue_number=entry.queue_number,
        status=entry.status,
        estimated_wait_time=entry.estimated_wait_time,
        wait_minutes=wait_minutes(entry.created_at, now),
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def _entries_query(clinic_id: UUID, *, for_update: bool = False):
    query = (
        select(QueueEntry)
        .options(joinedload(QueueEntry.patient, innerjoin=True))
        .where(QueueEntry.clinic_id == clinic_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update(of=QueueEntry)
    return query


async def _get_entry(
    db: AsyncSession,
    clinic_id: UUID,
    entry_id: UUID,
    *,
    for_update: bool = False,
) -> QueueEntry:
    result = await db.execute(
        _entries_query(clinic_id, for_update=for_update).where(QueueEntry.id == entry_id)
    )
    entry = result.scalar_one_or_none()
    if not entry:
        raise NotFoundException("Entrada de cola")
    return entry


async def _current_serving(
    db: AsyncSession,
    clinic_id: UUID,
    branch: str,
) -> QueueEntry | None:
    result = await db.execute(
        _entries_query(clinic_id, for_update=True).where(
            QueueEntry.branch == branch,
            QueueEntry.status == QueueStatus.SERVING,
        )
    )
    return result.scalar_one_or_none()


async def _next_queue_number(db: AsyncSession, clinic_id: UUID) -> int:
    """max(queue_number) + 1 de la clínica; los números nunca se reutilizan."""
    result = await db.execute(
        select(func.max(QueueEntry.queue_number)).where(QueueEntry.clinic_id == clinic_id)
    )
    return (result.scalar() or 0) + 1


async def _transition(
    db: AsyncSession,
    user: Profile,
    entry: QueueEntry,
    new_status: QueueStatus,
    ip_address: str | None = None,
) -> None:
    """Aplica una transición validada por la state machine y la audita."""
    if not is_valid_transition(entry.status, new_status):
        valid = VALID_TRANSITIONS.get(entry.status, [])
        raise ValidationException(
            f"No se puede cambiar de '{entry.status.value}' a '{new_status.value}'. "
            f"Transiciones válidas: {', '.join(s.value for s in valid) or 'ninguna'}"
        )

    old_status = entry.status
    entry.status = new_status
    await db.flush()

    await log_action(
        db,
        clinic_id=entry.clinic_id,
        user_id=user.id,
        entity="queue",
        entity_id=str(entry.id),
        action=new_status.value,
        old_data={"status": old_status.value},
        new_data={"status": new_status.value, "queue_number": entry.queue_number},
        ip_address=ip_address,
    )


# ── Encolar ──────────────────────────────────────────

async def enqueue(
    db: AsyncSession,
    user: Profile,
    data: QueueEnqueue,
    activity: queue_activity.QueueActivityLog,
    ip_address: str | None = None,
) -> QueueEntryResponse:
    """Agrega al paciente al final de la cola de la sede."""
    clinic_id = user.clinic_id
    branch = data.branch or settings.QUEUE_DEFAULT_BRANCH
    patient = await get_patient_profile(db, clinic_id, data.patient_id)

    existing = await db.execute(
        select(QueueEntry.id).where(
            QueueEntry.clinic_id == clinic_id,
            QueueEntry.patient_id == data.patient_id,
            QueueEntry.branch == branch,
            QueueEntry.status.in_(ACTIVE_STATUSES),
        )
    )
    if existing.scalar_one_or_none():
        raise ConflictException("El paciente ya está en la cola de esta sede")

    entry = QueueEntry(
        clinic_id=clinic_id,
        patient_id=patient.id,
        branch=branch,
        queue_number=await _next_queue_number(db, clinic_id),
        status=QueueStatus.WAITING,
        estimated_wait_time=settings.QUEUE_DEFAULT_WAIT_MINUTES,
    )
    db.add(entry)
    await db.flush()

    await log_action(
        db,
        clinic_id=clinic_id,
        user_id=user.id,
        entity="queue",
        entity_id=str(entry.id),
        action="enqueue",
        new_data={
            "patient_id": patient.id,
            "branch": branch,
            "queue_number": entry.queue_number,
        },
        ip_address=ip_address,
    )
    activity.record(clinic_id, patient.full_name, entry.queue_number, queue_activity.ACTION_ADDED)
    logger.info(
        "Paciente %s encolado #%s sede=%s", patient.id, entry.queue_number, branch
    )

    entry = await _get_entry(db, clinic_id, entry.id)
    return _to_response(entry)


# ── Llamar ───────────────────────────────────────────

async def _serve(
    db: AsyncSession,
    user: Profile,
    entry: QueueEntry,
    activity: queue_activity.QueueActivityLog,
    ip_address: str | None = None,
) -> QueueCallResponse:
    """Completa la entrada en atención de la sede (si hay) y atiende `entry`."""
    if entry.status != QueueStatus.WAITING:
        raise ValidationException(
            f"Solo se puede llamar a pacientes en espera (estado actual: '{entry.status.value}')"
        )

    completed = None
    current = await _current_serving(db, entry.clinic_id, entry.branch)
    if current is not None:
        await _transition(db, user, current, QueueStatus.COMPLETED, ip_address)
        activity.record(
            entry.clinic_id,
            current.patient.full_name,
            current.queue_number,
            queue_activity.ACTION_COMPLETED,
        )
        completed = current

    await _transition(db, user, entry, QueueStatus.SERVING, ip_address)
    activity.record(
        entry.clinic_id,
        entry.patient.full_name,
        entry.queue_number,
        queue_activity.ACTION_SERVING,
    )
    logger.info("Atendiendo #%s sede=%s", entry.queue_number, entry.branch)

    now = utcnow()
    return QueueCallResponse(
        serving=_to_response(entry, now),
        completed=_to_response(completed, now) if completed else None,
    )


async def call_next(
    db: AsyncSession,
    user: Profile,
    activity: queue_activity.QueueActivityLog,
    branch: str | None = None,
    ip_address: str | None = None,
) -> QueueCallResponse:
    """Atiende al paciente en espera con el menor número de la sede."""
    branch = branch or settings.QUEUE_DEFAULT_BRANCH
    result = await db.execute(
        _entries_query(user.clinic_id, for_update=True)
        .where(
            QueueEntry.branch == branch,
            QueueEntry.status == QueueStatus.WAITING,
        )
        .order_by(QueueEntry.queue_number)
        .limit(1)
    )
    entry = result.scalar_one_or_none()
    if not entry:
        raise NotFoundException("Paciente en espera", "No hay pacientes en espera en esta sede")
    return await _serve(db, user, entry, activity, ip_address)


async def call_entry(
    db: AsyncSession,
    user: Profile,
    entry_id: UUID,
    activity: queue_activity.QueueActivityLog,
    ip_address: str | None = None,
) -> QueueCallResponse:
    """Atiende a una entrada específica en espera."""
    entry = await _get_entry(db, user.clinic_id, entry_id, for_update=True)
    return await _serve(db, user, entry, activity, ip_address)


# ── Completar / cancelar / quitar ────────────────────

async def complete_entry(
    db: AsyncSession,
    user: Profile,
    entry_id: UUID,
    activity: queue_activity.QueueActivityLog,
    ip_address: str | None = None,
) -> QueueEntryResponse:
    entry = await _get_entry(db, user.clinic_id, entry_id, for_update=True)
    await _transition(db, user, entry, QueueStatus.COMPLETED, ip_address)
    activity.record(
        entry.clinic_id, entry.patient.full_name, entry.queue_number,
        queue_activity.ACTION_COMPLETED,
    )
    return _to_response(entry)


async def cancel_entry(
    db: AsyncSession,
    user: Profile,
    entry_id: UUID,
    activity: queue_activity.QueueActivityLog,
    ip_address: str | None = None,
) -> QueueEntryResponse:
    entry = await _get_entry(db, user.clinic_id, entry_id, for_update=True)
    await _transition(db, user, entry, QueueStatus.CANCELLED, ip_address)
    activity.record(
        entry.clinic_id, entry.patient.full_name, entry.queue_number,
        queue_activity.ACTION_CANCELLED,
    )
    return _to_response(entry)


async def remove_entry(
    db: AsyncSession,
    user: Profile,
    entry_id: UUID,
    activity: queue_activity.QueueActivityLog,
    ip_address: str | None = None,
) -> QueueEntryResponse:
    """Quita de la lista de espera (cancela una entrada aún en espera)."""
    entry = await _get_entry(db, user.clinic_id, entry_id, for_update=True)
    if entry.status != QueueStatus.WAITING:
        raise ValidationException(
            f"Solo se pueden quitar entradas en espera (estado actual: '{entry.status.value}')"
        )
    await _transition(db, user, entry, QueueStatus.CANCELLED, ip_address)
    activity.record(
        entry.clinic_id, entry.patient.full_name, entry.queue_number,
        queue_activity.ACTION_REMOVED,
    )
    return _to_response(entry)


# ── Tablero ──────────────────────────────────────────

async def get_board(
    db: AsyncSession,
    clinic_id: UUID,
    activity: queue_activity.QueueActivityLog,
    branch: str | None = None,
) -> QueueBoardResponse:
    """
    Entradas en atención y en espera ordenadas por número, con los
    minutos de espera calculados al momento de la consulta.
    """
    query = _entries_query(clinic_id).where(QueueEntry.status.in_(ACTIVE_STATUSES))
    if branch:
        query = query.where(QueueEntry.branch == branch)
    result = await db.execute(query.order_by(QueueEntry.queue_number))
    entries = result.scalars().all()

    now = utcnow()
    return QueueBoardResponse(
        branch=branch,
        serving=[_to_response(e, now) for e in entries if e.status == QueueStatus.SERVING],
        waiting=[_to_response(e, now) for e in entries if e.status == QueueStatus.WAITING],
        activity=activity.recent(clinic_id),
    )


# ── Mantenimiento ────────────────────────────────────

async def close_stale_entries(db: AsyncSession, cutoff: datetime) -> int:
    """
    Cierra las entradas activas creadas antes de `cutoff`:
    en espera → cancelled, en atención → completed.
    """
    result = await db.execute(
        select(QueueEntry)
        .where(
            QueueEntry.status.in_(ACTIVE_STATUSES),
            QueueEntry.created_at < cutoff,
        )
        .with_for_update()
    )
    entries = result.scalars().all()

    for entry in entries:
        if entry.status == QueueStatus.SERVING:
            entry.status = QueueStatus.COMPLETED
        else:
            entry.status = QueueStatus.CANCELLED
    await db.flush()

    if entries:
        logger.info("Cerradas %d entradas de cola anteriores a %s", len(entries), cutoff)
    return len(entries)
