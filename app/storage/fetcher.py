"""
Descarga de archivos por URL (firmada, pública o almacenada) con httpx.
"""

import httpx

from app.storage.base import StorageError


class FileFetcher:

    def __init__(self, timeout: float = 15.0):
        self.timeout = timeout

    async def fetch(self, url: str, params: dict | None = None) -> tuple[bytes, str | None]:
        """GET de la URL. Retorna (contenido, content-type)."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url, params=params)
        except httpx.TimeoutException:
            raise StorageError("fetch", f"Timeout al descargar {url}")
        except httpx.RequestError as exc:
            raise StorageError("fetch", f"Error de conexión: {exc}")

        if response.status_code != 200:
            raise StorageError("fetch", f"status {response.status_code}")
        return response.content, response.headers.get("content-type")
