"""
Modelo Clinic: Tenant principal y datos de contacto de la clínica.
"""

import re
import unicodedata
import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, utcnow


class Clinic(Base):
    __tablename__ = "clinics"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(250), unique=True, index=True, nullable=False,
        comment="Identificador URL-friendly para el catálogo público (ej: silario-dental)"
    )
    dentist_name: Mapped[str | None] = mapped_column(
        String(200), comment="Dentista titular que figura en los formularios impresos"
    )
    address: Mapped[str | None] = mapped_column(String(500))
    phone: Mapped[str | None] = mapped_column(String(20))
    email: Mapped[str | None] = mapped_column(String(255))
    opening_hours: Mapped[str | None] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    @staticmethod
    def generate_slug(name: str) -> str:
        """Genera un slug URL-friendly a partir del nombre de la clínica."""
        # Normalizar unicode (á → a, ñ → n, etc.)
        text = unicodedata.normalize("NFKD", name)
        text = text.encode("ascii", "ignore").decode("ascii")
        text = text.lower().strip()
        text = re.sub(r"[^\w\s-]", "", text)
        text = re.sub(r"[\s_]+", "-", text)
        text = re.sub(r"-+", "-", text).strip("-")
        return text or "clinica"

    def __repr__(self) -> str:
        return f"<Clinic {self.name} ({self.slug})>"
