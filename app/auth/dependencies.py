"""
Dependencies de FastAPI para autenticación, roles y acceso a pacientes.
"""

from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import TokenType, decode_token
from app.auth.rbac import has_permission
from app.core.exceptions import CredentialsException, ForbiddenException
from app.database import get_db
from app.models.profile import Profile, UserRole

# ── Security scheme ──────────────────────────────────
security = HTTPBearer()


# ── Token payload tipado ─────────────────────────────
class TokenPayload:
    """Datos extraídos del access token decodificado."""

    def __init__(self, payload: dict):
        self.user_id: UUID = UUID(payload["sub"])
        self.clinic_id: UUID = UUID(payload["clinic_id"])
        self.role: str = payload.get("role", "")


# ── Obtener usuario actual ───────────────────────────
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """
    Dependency que:
    1. Decodifica el access token del header Authorization
    2. Carga el perfil activo de la clínica del token
    3. Rechaza el token si el rol del perfil cambió desde que se emitió
    """
    try:
        payload = decode_token(credentials.credentials, TokenType.ACCESS)
    except jwt.InvalidTokenError:
        raise CredentialsException("Token inválido o expirado")

    token_data = TokenPayload(payload)

    result = await db.execute(
        select(Profile).where(
            Profile.id == token_data.user_id,
            Profile.clinic_id == token_data.clinic_id,
            Profile.is_active.is_(True),
        )
    )
    user = result.scalar_one_or_none()

    if user is None:
        raise CredentialsException("Usuario no encontrado o inactivo")

    if token_data.role != user.role.value:
        raise CredentialsException("El rol del usuario cambió; inicie sesión nuevamente")

    return user


# ── Factory de dependency con roles ──────────────────
def require_role(*allowed_roles: UserRole):
    """
    Factory que crea un dependency que verifica el rol del usuario.

    Uso:
        @router.put("/me")
        async def update_clinic(user: Profile = Depends(require_role(UserRole.ADMIN))):
            ...
    """

    async def _check_role(
        user: Profile = Depends(get_current_user),
    ) -> Profile:
        if user.role not in allowed_roles:
            raise ForbiddenException(
                f"Se requiere uno de los roles: {', '.join(r.value for r in allowed_roles)}"
            )
        return user

    return _check_role


# ── Factory de dependency con permisos RBAC ──────────
def require_permission(resource: str, action: str):
    """Verifica el permiso (recurso, acción) del mapa RBAC."""

    async def _check_permission(
        user: Profile = Depends(get_current_user),
    ) -> Profile:
        if not has_permission(user.role, resource, action):
            raise ForbiddenException(
                f"Sin permiso para '{action}' en '{resource}'"
            )
        return user

    return _check_permission


def ensure_patient_access(user: Profile, patient_id: UUID) -> None:
    """
    Un paciente solo accede a sus propios datos; el personal a cualquier
    paciente de su clínica (el filtro por clínica lo aplica cada servicio).
    """
    if user.role == UserRole.PATIENT and user.id != patient_id:
        raise ForbiddenException("Solo puede acceder a sus propios datos")
