"""
Fixtures compartidas para Pytest.
Configura base de datos de test, claves JWT, almacenamiento falso y clientes HTTP.
"""

import os
import tempfile
from collections.abc import AsyncGenerator
from pathlib import Path
from uuid import uuid4

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


# ── Claves RSA de test (antes de importar la app) ────
def _write_test_keys() -> Path:
    keys_dir = Path(tempfile.mkdtemp(prefix="clinica-keys-"))
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    (keys_dir / "private.pem").write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    (keys_dir / "public.pem").write_bytes(
        private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    return keys_dir


_keys_dir = _write_test_keys()
os.environ["JWT_PRIVATE_KEY_PATH"] = str(_keys_dir / "private.pem")
os.environ["JWT_PUBLIC_KEY_PATH"] = str(_keys_dir / "public.pem")
os.environ["DEBUG"] = "false"
os.environ["STORAGE_BACKEND"] = "supabase"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.auth.jwt import create_access_token  # noqa: E402
from app.core.security import hash_password  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.clinic import Clinic  # noqa: E402
from app.models.profile import Profile, UserRole  # noqa: E402
from app.services import patient_file_service  # noqa: E402
from app.services.queue_activity import QueueActivityLog, get_activity_log  # noqa: E402
from app.storage.base import ObjectStorage, StorageError  # noqa: E402
from app.storage.dependencies import get_fetcher, get_storage  # noqa: E402

TEST_PASSWORD = "secreto123"
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


# ── Dobles de almacenamiento ─────────────────────────
class FakeStorage(ObjectStorage):
    """Bucket en memoria con interruptores de fallo por operación."""

    bucket = "patient-files"
    base_url = "https://storage.test"

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.removed: list[str] = []
        self.fail_upload = False
        self.fail_download = False
        self.fail_signed_url = False
        self.fail_remove = False

    async def upload(self, path, content, content_type=None):
        if self.fail_upload:
            raise StorageError("upload", "bucket no disponible")
        self.objects[path] = content

    async def download(self, path):
        if self.fail_download or path not in self.objects:
            raise StorageError("download", "objeto no disponible")
        return self.objects[path]

    async def create_signed_url(self, path, expires_in):
        if self.fail_signed_url or path not in self.objects:
            raise StorageError("signed_url", "no se pudo firmar")
        return f"{self.base_url}/sign/{self.bucket}/{path}?token=abc"

    def get_public_url(self, path):
        return f"{self.base_url}/public/{self.bucket}/{path}"

    async def remove(self, path):
        if self.fail_remove:
            raise StorageError("remove", "permiso denegado")
        self.objects.pop(path, None)
        self.removed.append(path)


class FakeFetcher:
    """Respuestas HTTP pregrabadas por URL (sin query string)."""

    def __init__(self):
        self.responses: dict[str, tuple[bytes, str | None]] = {}
        self.calls: list[tuple[str, dict | None]] = []

    async def fetch(self, url, params=None):
        self.calls.append((url, params))
        if url not in self.responses:
            raise StorageError("fetch", "status 404")
        return self.responses[url]


# ── Engine de test (SQLite async en memoria) ─────────
@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Crea las tablas en una base en memoria para cada test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provee una sesión de DB de test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def activity() -> QueueActivityLog:
    return QueueActivityLog(maxlen=10)


@pytest.fixture(autouse=True)
def _clear_file_cache():
    patient_file_service.clear_cache()
    yield
    patient_file_service.clear_cache()


@pytest_asyncio.fixture
async def client(
    session_factory, storage, fetcher, activity
) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP de test que usa la DB y el almacenamiento de test."""

    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_fetcher] = lambda: fetcher
    app.dependency_overrides[get_activity_log] = lambda: activity

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Datos base ───────────────────────────────────────
@pytest_asyncio.fixture
async def test_clinic(db_session: AsyncSession) -> Clinic:
    """Crea una clínica de test."""
    clinic = Clinic(
        id=uuid4(),
        name="Silario Dental Clinic",
        slug="silario-dental-clinic",
        dentist_name="Dra. Ana Silario",
        address="Cabugao, Ilocos Sur",
        phone="0917 123 4567",
        email="contacto@silario.com",
    )
    db_session.add(clinic)
    await db_session.commit()
    return clinic


@pytest.fixture
def make_profile(db_session: AsyncSession, test_clinic: Clinic):
    """Factory de perfiles de la clínica de test."""

    async def _make(role: UserRole, full_name: str, email: str | None = None, **fields) -> Profile:
        profile = Profile(
            id=uuid4(),
            clinic_id=test_clinic.id,
            email=email or f"{uuid4().hex[:8]}@silario.com",
            hashed_password=_PASSWORD_HASH,
            role=role,
            full_name=full_name,
            is_active=True,
            **fields,
        )
        db_session.add(profile)
        await db_session.commit()
        return profile

    return _make


@pytest_asyncio.fixture
async def admin_user(make_profile) -> Profile:
    return await make_profile(UserRole.ADMIN, "Admin Test", email="admin@silario.com")


@pytest_asyncio.fixture
async def doctor_user(make_profile) -> Profile:
    return await make_profile(UserRole.DOCTOR, "Dra. Ana Silario", email="doctor@silario.com")


@pytest_asyncio.fixture
async def staff_user(make_profile) -> Profile:
    return await make_profile(UserRole.STAFF, "Recepción Test", email="staff@silario.com")


@pytest_asyncio.fixture
async def patient_user(make_profile) -> Profile:
    return await make_profile(
        UserRole.PATIENT, "Juan Dela Cruz", email="juan@correo.com", phone="09171234567"
    )


@pytest_asyncio.fixture
async def other_patient(make_profile) -> Profile:
    return await make_profile(UserRole.PATIENT, "Maria Santos", email="maria@correo.com")


@pytest.fixture
def auth_headers():
    """Header Authorization con un access token válido para el usuario."""

    def _headers(user: Profile) -> dict[str, str]:
        token = create_access_token(user.id, user.clinic_id, user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers
