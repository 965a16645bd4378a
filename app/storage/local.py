"""
Almacenamiento en disco bajo STORAGE_DIR/<bucket>, servido en MEDIA_URL.
Para desarrollo y despliegues sin Supabase.
"""

import logging
from pathlib import Path

from app.storage.base import ObjectStorage, StorageError

logger = logging.getLogger(__name__)


class LocalStorage(ObjectStorage):

    def __init__(self, root: str, bucket: str, media_url: str = "/media", public_base_url: str = ""):
        self.root = Path(root).resolve()
        self.bucket = bucket
        self.media_url = media_url.rstrip("/")
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, operation: str, path: str) -> Path:
        bucket_dir = self.root / self.bucket
        dest = (bucket_dir / path).resolve()
        if bucket_dir.resolve() not in dest.parents:
            raise StorageError(operation, f"Ruta fuera del bucket: {path}")
        return dest

    async def upload(self, path: str, content: bytes, content_type: str | None = None) -> None:
        dest = self._resolve("upload", path)
        if dest.exists():
            raise StorageError("upload", f"El archivo ya existe: {path}")
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(content)
        except OSError as exc:
            raise StorageError("upload", str(exc))
        logger.info("Archivo guardado en %s", dest)

    async def download(self, path: str) -> bytes:
        dest = self._resolve("download", path)
        try:
            return dest.read_bytes()
        except OSError as exc:
            raise StorageError("download", str(exc))

    async def create_signed_url(self, path: str, expires_in: int) -> str:
        raise StorageError("create_signed_url", "No disponible en almacenamiento local")

    def get_public_url(self, path: str) -> str:
        return f"{self.public_base_url}{self.media_url}/{self.bucket}/{path}"

    async def remove(self, path: str) -> None:
        dest = self._resolve("remove", path)
        try:
            dest.unlink()
        except OSError as exc:
            raise StorageError("remove", str(exc))
