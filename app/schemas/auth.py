"""
Schemas de autenticación: login, registro de pacientes, tokens.
"""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.profile import UserRole
from app.schemas.validators import normalize_phone


# ── Login ────────────────────────────────────────────
class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenData(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserLoginData(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: UserRole


class ClinicLoginData(BaseModel):
    id: UUID
    name: str
    slug: str


class LoginResponse(BaseModel):
    user: UserLoginData
    clinic: ClinicLoginData
    tokens: TokenData


# ── Refresh Token ────────────────────────────────────
class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


# ── Registro de paciente ─────────────────────────────
class PatientRegisterRequest(BaseModel):
    """Auto-registro de un paciente en la clínica identificada por slug."""

    clinic_slug: str = Field(..., min_length=1, max_length=250)
    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    phone: str | None = Field(None, max_length=20)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre completo es obligatorio")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return normalize_phone(v)


class RegisterResponse(BaseModel):
    user: UserLoginData
    clinic: ClinicLoginData
    tokens: TokenData
    message: str = "Registro exitoso"
