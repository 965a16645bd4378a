"""
Endpoints de configuración de la cuenta: formulario de seguridad.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.database import get_db
from app.models.profile import Profile
from app.schemas.profile import ChangePasswordRequest, ChangePasswordResponse
from app.services import auth_service

router = APIRouter()


@router.put("/password", response_model=ChangePasswordResponse)
async def change_password(
    data: ChangePasswordRequest,
    request: Request,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Cambia la contraseña re-autenticando con la actual.
    Si la actual es incorrecta responde 422 con el error en `current_password`.
    """
    await auth_service.change_password(
        db,
        user,
        current_password=data.current_password,
        new_password=data.new_password,
        ip_address=request.client.host if request.client else None,
    )
    return ChangePasswordResponse()
