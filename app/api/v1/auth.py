"""
Endpoints de autenticación: registro de pacientes, login, refresh, perfil actual.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.database import get_db
from app.models.profile import Profile
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    PatientRegisterRequest,
    RefreshRequest,
    RegisterResponse,
    TokenResponse,
)
from app.schemas.profile import ProfileResponse
from app.services import auth_service

router = APIRouter()


def _get_client_ip(request: Request) -> str | None:
    """Obtiene la IP del cliente desde los headers o la conexión."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    data: PatientRegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Auto-registro de un paciente en la clínica indicada por slug.
    No requiere autenticación.
    """
    return await auth_service.register_patient(
        db, data, ip_address=_get_client_ip(request)
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Autentica un usuario con email y contraseña."""
    return await auth_service.login(
        db, data, ip_address=_get_client_ip(request)
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Emite un nuevo par de tokens a partir del refresh token."""
    return await auth_service.refresh_tokens(db, data.refresh_token)


@router.get("/me", response_model=ProfileResponse)
async def me(user: Profile = Depends(get_current_user)):
    """Perfil del usuario autenticado."""
    return user
