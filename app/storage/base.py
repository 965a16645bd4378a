"""
Interfaz del almacenamiento de objetos (bucket de archivos de pacientes).

Las implementaciones lanzan StorageError ante cualquier fallo; cada
servicio decide si el fallo es fatal.
"""

from abc import ABC, abstractmethod


class StorageError(Exception):
    """Fallo de una operación contra el almacenamiento de objetos."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")


class ObjectStorage(ABC):
    """Operaciones sobre un único bucket."""

    bucket: str

    @abstractmethod
    async def upload(self, path: str, content: bytes, content_type: str | None = None) -> None:
        ...

    @abstractmethod
    async def download(self, path: str) -> bytes:
        ...

    @abstractmethod
    async def create_signed_url(self, path: str, expires_in: int) -> str:
        ...

    @abstractmethod
    def get_public_url(self, path: str) -> str:
        ...

    @abstractmethod
    async def remove(self, path: str) -> None:
        ...
