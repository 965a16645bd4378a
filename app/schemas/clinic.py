"""
Schemas para Clinic (datos de la clínica).
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.schemas.validators import normalize_phone, validate_email_format


class ClinicUpdate(BaseModel):
    """Formulario de información de la clínica (solo admin)."""
    name: str = Field(..., max_length=200)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=20)
    address: str | None = Field(None, max_length=500)
    dentist_name: str | None = Field(None, max_length=200)
    opening_hours: str | None = Field(None, max_length=200)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre de la clínica es obligatorio")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return validate_email_format(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return normalize_phone(v)


class ClinicResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    dentist_name: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    opening_hours: str | None = None
    description: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
