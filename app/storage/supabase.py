"""
Cliente de Supabase Storage (API REST) con httpx.
"""

import logging
from urllib.parse import quote

import httpx

from app.storage.base import ObjectStorage, StorageError

logger = logging.getLogger(__name__)


class SupabaseStorage(ObjectStorage):

    def __init__(self, url: str, service_key: str, bucket: str, timeout: float = 15.0):
        self.base_url = f"{url.rstrip('/')}/storage/v1"
        self.bucket = bucket
        self.timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def _object_url(self, path: str) -> str:
        return f"{self.base_url}/object/{self.bucket}/{quote(path)}"

    async def _request(self, operation: str, method: str, url: str, **kwargs) -> httpx.Response:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException:
            raise StorageError(operation, "Timeout al contactar el almacenamiento")
        except httpx.RequestError as exc:
            raise StorageError(operation, f"Error de conexión: {exc}")

        if response.status_code >= 400:
            raise StorageError(
                operation,
                f"status {response.status_code}: {response.text[:200]}",
            )
        return response

    async def upload(self, path: str, content: bytes, content_type: str | None = None) -> None:
        await self._request(
            "upload",
            "POST",
            self._object_url(path),
            content=content,
            headers={
                "Content-Type": content_type or "application/octet-stream",
                "x-upsert": "false",
            },
        )
        logger.info("Archivo subido a %s/%s", self.bucket, path)

    async def download(self, path: str) -> bytes:
        response = await self._request("download", "GET", self._object_url(path))
        return response.content

    async def create_signed_url(self, path: str, expires_in: int) -> str:
        response = await self._request(
            "create_signed_url",
            "POST",
            f"{self.base_url}/object/sign/{self.bucket}/{quote(path)}",
            json={"expiresIn": expires_in},
        )
        signed = response.json().get("signedURL")
        if not signed:
            raise StorageError("create_signed_url", "Respuesta sin signedURL")
        return f"{self.base_url}{signed}"

    def get_public_url(self, path: str) -> str:
        return f"{self.base_url}/object/public/{self.bucket}/{quote(path)}"

    async def remove(self, path: str) -> None:
        await self._request(
            "remove",
            "DELETE",
            f"{self.base_url}/object/{self.bucket}",
            json={"prefixes": [path]},
        )
        logger.info("Archivo eliminado de %s/%s", self.bucket, path)
