"""
Lógica de negocio para el catálogo de servicios por clínica.
"""

import math
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.models.clinic import Clinic
from app.models.profile import Profile
from app.models.service import CATEGORY_LABELS, Service, ServiceCategory
from app.schemas.service import (
    ServiceCategoryCount,
    ServiceCreate,
    ServiceListResponse,
    ServiceResponse,
    ServiceUpdate,
)
from app.services.audit_service import log_action

_DECIMAL_FIELDS = ("price", "price_min", "price_max")


def _to_response(service: Service) -> ServiceResponse:
    return ServiceResponse.model_validate(service)


def _to_decimal(value: float | None) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


async def _get_service(db: AsyncSession, clinic_id: UUID, service_id: UUID) -> Service:
    result = await db.execute(
        select(Service).where(
            Service.id == service_id,
            Service.clinic_id == clinic_id,
        )
    )
    service = result.scalar_one_or_none()
    if not service:
        raise NotFoundException("Servicio")
    return service


async def _ensure_unique_name(
    db: AsyncSession,
    clinic_id: UUID,
    name: str,
    exclude_id: UUID | None = None,
) -> None:
    query = select(Service.id).where(
        Service.clinic_id == clinic_id,
        func.lower(Service.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.where(Service.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none():
        raise ConflictException(f"Ya existe un servicio con el nombre '{name}'")


async def get_clinic_by_slug(db: AsyncSession, slug: str) -> Clinic:
    result = await db.execute(
        select(Clinic).where(Clinic.slug == slug, Clinic.is_active.is_(True))
    )
    clinic = result.scalar_one_or_none()
    if not clinic:
        raise NotFoundException("Clínica")
    return clinic


# ── CRUD ─────────────────────────────────────────────


async def create_service(
    db: AsyncSession,
    user: Profile,
    data: ServiceCreate,
    ip_address: str | None = None,
) -> ServiceResponse:
    await _ensure_unique_name(db, user.clinic_id, data.name)

    service = Service(
        clinic_id=user.clinic_id,
        name=data.name,
        description=data.description,
        category=data.category,
        duration_minutes=data.duration_minutes,
        price=_to_decimal(data.price),
        price_min=_to_decimal(data.price_min),
        price_max=_to_decimal(data.price_max),
        is_active=data.is_active,
    )
    db.add(service)
    await db.flush()
    await db.refresh(service)

    await log_action(
        db,
        clinic_id=user.clinic_id,
        user_id=user.id,
        entity="service",
        entity_id=str(service.id),
        action="create",
        new_data=data.model_dump(),
        ip_address=ip_address,
    )
    return _to_response(service)


async def update_service(
    db: AsyncSession,
    user: Profile,
    service_id: UUID,
    data: ServiceUpdate,
    ip_address: str | None = None,
) -> ServiceResponse:
    service = await _get_service(db, user.clinic_id, service_id)
    update_data = data.model_dump(exclude_unset=True)

    # Verificar nombre único si se está cambiando
    if "name" in update_data and update_data["name"] != service.name:
        await _ensure_unique_name(db, user.clinic_id, update_data["name"], exclude_id=service_id)

    for key, value in update_data.items():
        if key in _DECIMAL_FIELDS:
            value = _to_decimal(value)
        setattr(service, key, value)

    if (
        service.price_min is not None
        and service.price_max is not None
        and service.price_min > service.price_max
    ):
        raise ValidationException("price_min no puede ser mayor que price_max")

    await db.flush()
    await db.refresh(service)

    await log_action(
        db,
        clinic_id=user.clinic_id,
        user_id=user.id,
        entity="service",
        entity_id=str(service.id),
        action="update",
        new_data=update_data,
        ip_address=ip_address,
    )
    return _to_response(service)


async def delete_service(
    db: AsyncSession,
    user: Profile,
    service_id: UUID,
    ip_address: str | None = None,
) -> None:
    """Soft delete: desactiva el servicio."""
    service = await _get_service(db, user.clinic_id, service_id)
    service.is_active = False
    await db.flush()

    await log_action(
        db,
        clinic_id=user.clinic_id,
        user_id=user.id,
        entity="service",
        entity_id=str(service.id),
        action="delete",
        ip_address=ip_address,
    )


async def get_service(
    db: AsyncSession,
    clinic_id: UUID,
    service_id: UUID,
    *,
    active_only: bool = False,
) -> ServiceResponse:
    service = await _get_service(db, clinic_id, service_id)
    if active_only and not service.is_active:
        raise NotFoundException("Servicio")
    return _to_response(service)


async def list_services(
    db: AsyncSession,
    clinic_id: UUID,
    page: int = 1,
    size: int = 20,
    search: str | None = None,
    is_active: bool | None = None,
    category: ServiceCategory | None = None,
) -> ServiceListResponse:
    query = select(Service).where(Service.clinic_id == clinic_id)

    if search:
        term = f"%{search.strip()}%"
        query = query.where(
            or_(Service.name.ilike(term), Service.description.ilike(term))
        )
    if is_active is not None:
        query = query.where(Service.is_active == is_active)
    if category is not None:
        query = query.where(Service.category == category)

    # Total
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0
    pages = max(1, math.ceil(total / size))

    # Paginated
    query = query.order_by(Service.name).offset((page - 1) * size).limit(size)
    result = await db.execute(query)
    services = result.scalars().all()

    return ServiceListResponse(
        items=[_to_response(s) for s in services],
        total=total,
        page=page,
        size=size,
        pages=pages,
    )


async def list_categories(
    db: AsyncSession,
    clinic_id: UUID,
) -> list[ServiceCategoryCount]:
    """Categorías con al menos un servicio activo y su cantidad."""
    result = await db.execute(
        select(Service.category, func.count(Service.id))
        .where(Service.clinic_id == clinic_id, Service.is_active.is_(True))
        .group_by(Service.category)
    )
    counts = dict(result.all())
    return [
        ServiceCategoryCount(category=category, label=label, count=counts[category])
        for category, label in CATEGORY_LABELS.items()
        if counts.get(category)
    ]
