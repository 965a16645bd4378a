"""
Schemas Pydantic para el módulo de Servicios.
Catálogo de servicios dentales por clínica.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.models.service import ServiceCategory


# ── Create / Update ──────────────────────────────────


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150, description="Nombre del servicio")
    description: str | None = None
    category: ServiceCategory = Field(ServiceCategory.GENERAL, description="Categoría del servicio")
    duration_minutes: int = Field(30, ge=5, le=480, description="Duración en minutos")
    price: float = Field(..., ge=0, description="Precio base en PHP")
    price_min: float | None = Field(None, ge=0)
    price_max: float | None = Field(None, ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def validate_price_range(self) -> "ServiceCreate":
        if (
            self.price_min is not None
            and self.price_max is not None
            and self.price_min > self.price_max
        ):
            raise ValueError("price_min no puede ser mayor que price_max")
        return self


class ServiceUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=150)
    description: str | None = None
    category: ServiceCategory | None = None
    duration_minutes: int | None = Field(None, ge=5, le=480)
    price: float | None = Field(None, ge=0)
    price_min: float | None = Field(None, ge=0)
    price_max: float | None = Field(None, ge=0)
    is_active: bool | None = None


# ── Response ─────────────────────────────────────────


class ServiceResponse(BaseModel):
    id: UUID
    clinic_id: UUID
    name: str
    description: str | None = None
    category: ServiceCategory
    duration_minutes: int
    price: float
    price_min: float | None = None
    price_max: float | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ServiceListResponse(BaseModel):
    items: list[ServiceResponse]
    total: int
    page: int
    size: int
    pages: int


class ServiceCategoryCount(BaseModel):
    category: ServiceCategory
    label: str
    count: int
