"""
Endpoints de la cola de atención: alta, llamado, cierre y tablero.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_permission
from app.database import get_db
from app.models.profile import Profile
from app.schemas.queue import (
    QueueBoardResponse,
    QueueCallResponse,
    QueueEnqueue,
    QueueEntryResponse,
)
from app.services import queue_service
from app.services.queue_activity import QueueActivityLog, get_activity_log

router = APIRouter()


def _get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.get("", response_model=QueueBoardResponse)
async def get_board(
    branch: str | None = Query(None, description="Sede; sin valor muestra todas"),
    user: Profile = Depends(require_permission("queue", "read")),
    db: AsyncSession = Depends(get_db),
    activity: QueueActivityLog = Depends(get_activity_log),
):
    """Tablero de la cola: en atención, en espera y actividad reciente."""
    return await queue_service.get_board(db, user.clinic_id, activity, branch=branch)


@router.post("", response_model=QueueEntryResponse, status_code=201)
async def enqueue(
    data: QueueEnqueue,
    request: Request,
    user: Profile = Depends(require_permission("queue", "manage")),
    db: AsyncSession = Depends(get_db),
    activity: QueueActivityLog = Depends(get_activity_log),
):
    """Agrega un paciente a la cola. Si ya está activo en la sede → 409."""
    return await queue_service.enqueue(
        db, user, data, activity, ip_address=_get_client_ip(request)
    )


@router.post("/call-next", response_model=QueueCallResponse)
async def call_next(
    request: Request,
    branch: str | None = Query(None),
    user: Profile = Depends(require_permission("queue", "manage")),
    db: AsyncSession = Depends(get_db),
    activity: QueueActivityLog = Depends(get_activity_log),
):
    """
    Atiende al siguiente en espera. El paciente en atención de la sede,
    si lo hay, se marca como completado.
    """
    return await queue_service.call_next(
        db, user, activity, branch=branch, ip_address=_get_client_ip(request)
    )


@router.post("/{entry_id}/call", response_model=QueueCallResponse)
async def call_entry(
    entry_id: UUID,
    request: Request,
    user: Profile = Depends(require_permission("queue", "manage")),
    db: AsyncSession = Depends(get_db),
    activity: QueueActivityLog = Depends(get_activity_log),
):
    return await queue_service.call_entry(
        db, user, entry_id, activity, ip_address=_get_client_ip(request)
    )


@router.post("/{entry_id}/complete", response_model=QueueEntryResponse)
async def complete_entry(
    entry_id: UUID,
    request: Request,
    user: Profile = Depends(require_permission("queue", "manage")),
    db: AsyncSession = Depends(get_db),
    activity: QueueActivityLog = Depends(get_activity_log),
):
    return await queue_service.complete_entry(
        db, user, entry_id, activity, ip_address=_get_client_ip(request)
    )


@router.post("/{entry_id}/cancel", response_model=QueueEntryResponse)
async def cancel_entry(
    entry_id: UUID,
    request: Request,
    user: Profile = Depends(require_permission("queue", "manage")),
    db: AsyncSession = Depends(get_db),
    activity: QueueActivityLog = Depends(get_activity_log),
):
    return await queue_service.cancel_entry(
        db, user, entry_id, activity, ip_address=_get_client_ip(request)
    )


@router.delete("/{entry_id}", response_model=QueueEntryResponse)
async def remove_entry(
    entry_id: UUID,
    request: Request,
    user: Profile = Depends(require_permission("queue", "manage")),
    db: AsyncSession = Depends(get_db),
    activity: QueueActivityLog = Depends(get_activity_log),
):
    """Quita de la lista de espera. Solo aplica a entradas en espera."""
    return await queue_service.remove_entry(
        db, user, entry_id, activity, ip_address=_get_client_ip(request)
    )
