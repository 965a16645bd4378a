"""
Dependencies de FastAPI que construyen el cliente de almacenamiento
a partir de la configuración.
"""

from functools import lru_cache

from app.config import get_settings
from app.storage.base import ObjectStorage
from app.storage.fetcher import FileFetcher
from app.storage.local import LocalStorage
from app.storage.supabase import SupabaseStorage


@lru_cache
def get_storage() -> ObjectStorage:
    settings = get_settings()
    if settings.STORAGE_BACKEND == "local":
        return LocalStorage(
            root=settings.STORAGE_DIR,
            bucket=settings.STORAGE_BUCKET,
            media_url=settings.MEDIA_URL,
            public_base_url=settings.PUBLIC_BASE_URL,
        )
    return SupabaseStorage(
        url=settings.SUPABASE_URL,
        service_key=settings.SUPABASE_SERVICE_KEY,
        bucket=settings.STORAGE_BUCKET,
        timeout=settings.STORAGE_TIMEOUT_SECONDS,
    )


@lru_cache
def get_fetcher() -> FileFetcher:
    return FileFetcher(timeout=get_settings().STORAGE_TIMEOUT_SECONDS)
