"""
Endpoints públicos del catálogo de servicios.
NO requieren autenticación: se accede con el slug de la clínica.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.service import ServiceCategory
from app.schemas.service import ServiceCategoryCount, ServiceListResponse, ServiceResponse
from app.services import service_service

router = APIRouter()


# ── Schemas para la info pública ──────────────────────────

class ClinicPublicInfoResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    dentist_name: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    opening_hours: str | None = None
    description: str | None = None

    model_config = {"from_attributes": True}


@router.get("/clinics/{slug}", response_model=ClinicPublicInfoResponse)
async def get_clinic_info(
    slug: str = Path(..., description="Slug de la clínica"),
    db: AsyncSession = Depends(get_db),
):
    """Datos de contacto de la clínica."""
    return await service_service.get_clinic_by_slug(db, slug)


@router.get("/clinics/{slug}/services", response_model=ServiceListResponse)
async def list_public_services(
    slug: str = Path(..., description="Slug de la clínica"),
    category: ServiceCategory | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Servicios activos de la clínica, filtrables por categoría y texto."""
    clinic = await service_service.get_clinic_by_slug(db, slug)
    return await service_service.list_services(
        db, clinic_id=clinic.id, page=page, size=size,
        search=search, is_active=True, category=category,
    )


@router.get(
    "/clinics/{slug}/services/categories",
    response_model=list[ServiceCategoryCount],
)
async def list_public_categories(
    slug: str = Path(..., description="Slug de la clínica"),
    db: AsyncSession = Depends(get_db),
):
    clinic = await service_service.get_clinic_by_slug(db, slug)
    return await service_service.list_categories(db, clinic.id)


@router.get("/clinics/{slug}/services/{service_id}", response_model=ServiceResponse)
async def get_public_service(
    service_id: UUID,
    slug: str = Path(..., description="Slug de la clínica"),
    db: AsyncSession = Depends(get_db),
):
    clinic = await service_service.get_clinic_by_slug(db, slug)
    return await service_service.get_service(
        db, clinic.id, service_id, active_only=True
    )
