"""
Servicio de autenticación: registro de pacientes, login, refresh y
cambio de contraseña.
"""

import logging
from uuid import UUID

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import (
    TokenType,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from app.core.exceptions import (
    ConflictException,
    CredentialsException,
    FieldValidationException,
    NotFoundException,
)
from app.core.security import hash_password, verify_password
from app.database import utcnow
from app.models.clinic import Clinic
from app.models.profile import Profile, UserRole
from app.schemas.auth import (
    ClinicLoginData,
    LoginRequest,
    LoginResponse,
    PatientRegisterRequest,
    RegisterResponse,
    TokenData,
    TokenResponse,
    UserLoginData,
)
from app.services.audit_service import log_action

logger = logging.getLogger(__name__)


def _issue_tokens(user: Profile) -> TokenData:
    return TokenData(
        access_token=create_access_token(user.id, user.clinic_id, user.role.value),
        refresh_token=create_refresh_token(user.id, user.clinic_id),
    )


def _user_data(user: Profile) -> UserLoginData:
    return UserLoginData(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
    )


def _clinic_data(clinic: Clinic) -> ClinicLoginData:
    return ClinicLoginData(id=clinic.id, name=clinic.name, slug=clinic.slug)


async def register_patient(
    db: AsyncSession,
    data: PatientRegisterRequest,
    ip_address: str | None = None,
) -> RegisterResponse:
    """
    Registra un paciente en la clínica indicada por slug.
    Retorna tokens para auto-login inmediato.
    """
    result = await db.execute(
        select(Clinic).where(Clinic.slug == data.clinic_slug, Clinic.is_active.is_(True))
    )
    clinic = result.scalar_one_or_none()
    if not clinic:
        raise NotFoundException("Clínica")

    email = data.email.lower()
    existing_user = await db.execute(select(Profile).where(Profile.email == email))
    if existing_user.scalar_one_or_none():
        raise ConflictException("Ya existe un usuario con ese email")

    user = Profile(
        clinic_id=clinic.id,
        email=email,
        hashed_password=hash_password(data.password),
        role=UserRole.PATIENT,
        full_name=data.full_name,
        phone=data.phone,
    )
    db.add(user)
    await db.flush()

    await log_action(
        db,
        clinic_id=clinic.id,
        user_id=user.id,
        entity="profile",
        entity_id=str(user.id),
        action="register",
        new_data={"email": user.email, "role": user.role.value},
        ip_address=ip_address,
    )
    logger.info("Paciente registrado user_id=%s clinic_id=%s", user.id, clinic.id)

    return RegisterResponse(
        user=_user_data(user),
        clinic=_clinic_data(clinic),
        tokens=_issue_tokens(user),
    )


async def login(
    db: AsyncSession,
    data: LoginRequest,
    ip_address: str | None = None,
) -> LoginResponse:
    """Autentica un usuario con email y contraseña."""
    result = await db.execute(
        select(Profile).where(
            Profile.email == data.email.lower(),
            Profile.is_active.is_(True),
        )
    )
    user = result.scalar_one_or_none()

    if not user:
        logger.warning("Login fallido: usuario no encontrado para email=%s", data.email)
        raise CredentialsException("Email o contraseña incorrectos")

    if not verify_password(data.password, user.hashed_password):
        logger.warning(
            "Login fallido: contraseña incorrecta para user_id=%s email=%s clinic_id=%s",
            user.id, user.email, user.clinic_id,
        )
        raise CredentialsException("Email o contraseña incorrectos")

    clinic = await db.get(Clinic, user.clinic_id)
    if not clinic:
        raise NotFoundException("Clínica")

    user.last_login = utcnow()
    await db.flush()

    await log_action(
        db,
        clinic_id=user.clinic_id,
        user_id=user.id,
        entity="profile",
        entity_id=str(user.id),
        action="login",
        ip_address=ip_address,
    )

    return LoginResponse(
        user=_user_data(user),
        clinic=_clinic_data(clinic),
        tokens=_issue_tokens(user),
    )


async def refresh_tokens(db: AsyncSession, refresh_token_str: str) -> TokenResponse:
    """Refresca un par de tokens usando el refresh token."""
    try:
        payload = decode_token(refresh_token_str, TokenType.REFRESH)
    except jwt.InvalidTokenError:
        raise CredentialsException("Refresh token inválido o expirado")

    user_id = UUID(payload["sub"])
    clinic_id = UUID(payload["clinic_id"])

    # Verificar que el usuario sigue activo
    result = await db.execute(
        select(Profile).where(
            Profile.id == user_id,
            Profile.clinic_id == clinic_id,
            Profile.is_active.is_(True),
        )
    )
    user = result.scalar_one_or_none()
    if not user:
        raise CredentialsException("Usuario no encontrado o inactivo")

    tokens = _issue_tokens(user)
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


async def change_password(
    db: AsyncSession,
    user: Profile,
    current_password: str,
    new_password: str,
    ip_address: str | None = None,
) -> None:
    """
    Cambia la contraseña del usuario autenticado.
    Re-autentica con la contraseña actual; si falla, el error se
    reporta sobre el campo current_password.
    """
    if not verify_password(current_password, user.hashed_password):
        logger.warning("Cambio de contraseña rechazado para user_id=%s", user.id)
        raise FieldValidationException(
            {"current_password": "La contraseña actual es incorrecta"}
        )

    user.hashed_password = hash_password(new_password)
    await db.flush()

    await log_action(
        db,
        clinic_id=user.clinic_id,
        user_id=user.id,
        entity="profile",
        entity_id=str(user.id),
        action="change_password",
        ip_address=ip_address,
    )
