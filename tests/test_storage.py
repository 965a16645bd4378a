"""
Tests del almacenamiento local en disco.
"""

import pytest

from app.storage.base import StorageError
from app.storage.local import LocalStorage


@pytest.fixture
def local_storage(tmp_path) -> LocalStorage:
    return LocalStorage(
        root=str(tmp_path),
        bucket="patient-files",
        media_url="/media/",
        public_base_url="http://localhost:8000/",
    )


async def test_upload_download_and_remove(local_storage, tmp_path):
    await local_storage.upload("p1/1_nota.txt", b"hola")
    assert (tmp_path / "patient-files" / "p1" / "1_nota.txt").read_bytes() == b"hola"
    assert await local_storage.download("p1/1_nota.txt") == b"hola"

    await local_storage.remove("p1/1_nota.txt")
    with pytest.raises(StorageError):
        await local_storage.download("p1/1_nota.txt")


async def test_upload_does_not_overwrite(local_storage):
    await local_storage.upload("p1/1_nota.txt", b"hola")
    with pytest.raises(StorageError):
        await local_storage.upload("p1/1_nota.txt", b"otra")


async def test_paths_outside_bucket_are_rejected(local_storage):
    with pytest.raises(StorageError) as exc_info:
        await local_storage.upload("../fuera.txt", b"x")
    assert exc_info.value.operation == "upload"


async def test_public_url_and_no_signed_urls(local_storage):
    assert (
        local_storage.get_public_url("p1/1_nota.txt")
        == "http://localhost:8000/media/patient-files/p1/1_nota.txt"
    )
    with pytest.raises(StorageError):
        await local_storage.create_signed_url("p1/1_nota.txt", 60)


async def test_remove_missing_file_raises(local_storage):
    with pytest.raises(StorageError):
        await local_storage.remove("p1/no-existe.txt")
