"""
Router principal de la API v1.
Agrupa todos los sub-routers de la versión 1.
"""

from fastapi import APIRouter

from app.api.v1.auth import router as auth_router
from app.api.v1.clinic import router as clinic_router
from app.api.v1.profiles import router as profiles_router
from app.api.v1.settings import router as settings_router
from app.api.v1.dental_charts import router as dental_charts_router
from app.api.v1.treatments import router as treatments_router
from app.api.v1.patient_files import router as patient_files_router
from app.api.v1.queue import router as queue_router
from app.api.v1.services import router as services_router
from app.api.v1.public import router as public_router

api_v1_router = APIRouter()

api_v1_router.include_router(
    auth_router,
    prefix="/auth",
    tags=["Autenticación"],
)

api_v1_router.include_router(
    clinic_router,
    prefix="/clinic",
    tags=["Clínica"],
)

api_v1_router.include_router(
    profiles_router,
    prefix="/profiles",
    tags=["Perfiles"],
)

api_v1_router.include_router(
    settings_router,
    prefix="/settings",
    tags=["Configuración"],
)

api_v1_router.include_router(
    dental_charts_router,
    prefix="/dental-charts",
    tags=["Odontograma"],
)

api_v1_router.include_router(
    treatments_router,
    prefix="/treatments",
    tags=["Tratamientos"],
)

api_v1_router.include_router(
    patient_files_router,
    prefix="/patient-files",
    tags=["Archivos del Paciente"],
)

api_v1_router.include_router(
    queue_router,
    prefix="/queue",
    tags=["Cola de Atención"],
)

api_v1_router.include_router(
    services_router,
    prefix="/services",
    tags=["Servicios"],
)

api_v1_router.include_router(
    public_router,
    prefix="/public",
    tags=["Catálogo Público"],
)
