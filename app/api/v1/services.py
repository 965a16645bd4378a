"""
Endpoints REST para el catálogo de servicios por clínica.
CRUD de servicios odontológicos con precios y duración.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_permission
from app.database import get_db
from app.models.profile import Profile
from app.models.service import ServiceCategory
from app.schemas.service import (
    ServiceCategoryCount,
    ServiceCreate,
    ServiceListResponse,
    ServiceResponse,
    ServiceUpdate,
)
from app.services import service_service

router = APIRouter()


def _get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.get("", response_model=ServiceListResponse)
async def list_services(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    search: str | None = Query(None, description="Buscar por nombre o descripción"),
    is_active: bool | None = Query(None, description="Filtrar por estado activo"),
    category: ServiceCategory | None = Query(None),
    user: Profile = Depends(require_permission("service", "read")),
    db: AsyncSession = Depends(get_db),
):
    """Lista paginada de servicios de la clínica."""
    return await service_service.list_services(
        db, clinic_id=user.clinic_id, page=page, size=size,
        search=search, is_active=is_active, category=category,
    )


@router.get("/categories", response_model=list[ServiceCategoryCount])
async def list_categories(
    user: Profile = Depends(require_permission("service", "read")),
    db: AsyncSession = Depends(get_db),
):
    """Categorías con servicios activos y su cantidad."""
    return await service_service.list_categories(db, clinic_id=user.clinic_id)


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: UUID,
    user: Profile = Depends(require_permission("service", "read")),
    db: AsyncSession = Depends(get_db),
):
    """Detalle de un servicio."""
    return await service_service.get_service(db, clinic_id=user.clinic_id, service_id=service_id)


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    request: Request,
    user: Profile = Depends(require_permission("service", "create")),
    db: AsyncSession = Depends(get_db),
):
    """Crear un nuevo servicio (solo admin)."""
    return await service_service.create_service(
        db, user, data, ip_address=_get_client_ip(request)
    )


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: UUID,
    data: ServiceUpdate,
    request: Request,
    user: Profile = Depends(require_permission("service", "update")),
    db: AsyncSession = Depends(get_db),
):
    """Actualizar un servicio (solo admin)."""
    return await service_service.update_service(
        db, user, service_id, data, ip_address=_get_client_ip(request)
    )


@router.delete("/{service_id}", status_code=204)
async def delete_service(
    service_id: UUID,
    request: Request,
    user: Profile = Depends(require_permission("service", "delete")),
    db: AsyncSession = Depends(get_db),
):
    """Desactivar un servicio (soft delete, solo admin)."""
    await service_service.delete_service(
        db, user, service_id, ip_address=_get_client_ip(request)
    )
