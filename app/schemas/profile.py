"""
Schemas de perfiles: formulario de perfil, cambio de contraseña y
directorio de pacientes.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from app.database import clinic_today
from app.models.profile import UserRole
from app.schemas.validators import normalize_phone, validate_email_format


# ── Formulario de perfil ─────────────────────────────
class ProfileUpdate(BaseModel):
    full_name: str = Field(..., max_length=200)
    email: str = Field(..., max_length=255)
    phone: str | None = Field(None, max_length=20)
    nickname: str | None = Field(None, max_length=100)
    office_phone: str | None = Field(None, max_length=20)
    address: str | None = Field(None, max_length=500)
    birthday: date | None = None
    gender: str | None = Field(None, max_length=20)
    nationality: str | None = Field(None, max_length=100)
    occupation: str | None = Field(None, max_length=100)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre completo es obligatorio")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return validate_email_format(v)

    @field_validator("phone", "office_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return normalize_phone(v)

    @field_validator("birthday")
    @classmethod
    def validate_birthday(cls, v: date | None) -> date | None:
        if v is not None and v > clinic_today():
            raise ValueError("La fecha de nacimiento no puede ser futura")
        return v


class ProfileResponse(BaseModel):
    id: UUID
    clinic_id: UUID
    email: str
    role: UserRole
    full_name: str
    nickname: str | None = None
    phone: str | None = None
    office_phone: str | None = None
    address: str | None = None
    birthday: date | None = None
    age: int | None = None
    gender: str | None = None
    nationality: str | None = None
    occupation: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PatientSummary(BaseModel):
    """Fila del directorio de pacientes."""
    id: UUID
    full_name: str
    email: str
    phone: str | None = None
    birthday: date | None = None

    model_config = {"from_attributes": True}


class PatientListResponse(BaseModel):
    items: list[PatientSummary]
    total: int
    page: int
    size: int
    pages: int


# ── Cambio de contraseña ────────────────────────────
class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str = Field(..., min_length=1, max_length=128)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        new_password = info.data.get("new_password")
        if new_password is not None and v != new_password:
            raise ValueError("La confirmación no coincide con la nueva contraseña")
        return v


class ChangePasswordResponse(BaseModel):
    message: str = "Contraseña actualizada correctamente"
