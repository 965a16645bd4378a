"""
Modelo Service: Catálogo de servicios por clínica.

Cada clínica gestiona su propio catálogo de servicios dentales con
precio base, rango de precio opcional y duración estimada.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, utcnow


class ServiceCategory(str, enum.Enum):
    """Categorías del catálogo."""
    GENERAL = "general"
    COSMETIC = "cosmetic"
    ORTHODONTICS = "orthodontics"
    SURGERY = "surgery"
    OTHER = "other"


CATEGORY_LABELS = {
    ServiceCategory.GENERAL: "General Dentistry",
    ServiceCategory.COSMETIC: "Cosmetic Dentistry",
    ServiceCategory.ORTHODONTICS: "Orthodontics",
    ServiceCategory.SURGERY: "Oral Surgery",
    ServiceCategory.OTHER: "Other",
}


class Service(Base):
    __tablename__ = "services"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(
        String(150), nullable=False,
        comment="Nombre del servicio"
    )
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[ServiceCategory] = mapped_column(
        Enum(ServiceCategory), nullable=False, default=ServiceCategory.GENERAL,
        comment="Categoría del servicio"
    )
    duration_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=30,
        comment="Duración estimada en minutos"
    )
    price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        comment="Precio base en PHP"
    )
    price_min: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), comment="Precio mínimo del rango (opcional)"
    )
    price_max: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), comment="Precio máximo del rango (opcional)"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_service_clinic", "clinic_id"),
        Index("idx_service_clinic_category", "clinic_id", "category"),
        UniqueConstraint("clinic_id", "name", name="uq_service_clinic_name"),
    )

    def __repr__(self) -> str:
        return f"<Service {self.name} [{self.category.value}] ₱{self.price}>"
