"""
Tokens de sesión RS256 para perfiles de la clínica.

Access token: sub (perfil), clinic_id y role; dura
JWT_ACCESS_TOKEN_EXPIRE_MINUTES. Refresh token: sub y clinic_id; dura
JWT_REFRESH_TOKEN_EXPIRE_DAYS. El claim `type` distingue ambos.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from app.config import get_settings

settings = get_settings()

_REQUIRED_CLAIMS = ["sub", "clinic_id", "type", "exp"]


class TokenType:
    ACCESS = "access"
    REFRESH = "refresh"


def _encode(claims: dict, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {**claims, "iat": now, "exp": now + lifetime},
        settings.jwt_private_key,
        algorithm=settings.JWT_ALGORITHM,
    )


def create_access_token(profile_id: UUID, clinic_id: UUID, role: str) -> str:
    return _encode(
        {
            "sub": str(profile_id),
            "clinic_id": str(clinic_id),
            "role": role,
            "type": TokenType.ACCESS,
        },
        timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(profile_id: UUID, clinic_id: UUID) -> str:
    return _encode(
        {
            "sub": str(profile_id),
            "clinic_id": str(clinic_id),
            "type": TokenType.REFRESH,
        },
        timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_token(token: str, token_type: str) -> dict:
    """
    Verifica firma, expiración y tipo del token.
    Lanza jwt.InvalidTokenError si algo no cuadra.
    """
    payload = jwt.decode(
        token,
        settings.jwt_public_key,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": _REQUIRED_CLAIMS},
    )
    if payload["type"] != token_type:
        raise jwt.InvalidTokenError(f"Se esperaba un token '{token_type}'")
    return payload
