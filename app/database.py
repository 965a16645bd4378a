"""
Configuración de base de datos con SQLAlchemy 2.0 async.
"""

from datetime import date, datetime, timezone
from typing import AsyncGenerator
from zoneinfo import ZoneInfo

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import get_settings

settings = get_settings()

# ── Engine async ─────────────────────────────────────
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
    pool_pre_ping=True,
)

# ── Session factory ──────────────────────────────────
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base declarativa ─────────────────────────────────
class Base(DeclarativeBase):
    pass


# JSONB en PostgreSQL, JSON genérico en otros motores (tests con SQLite)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Timestamp UTC con zona horaria, usado como default del lado Python."""
    return datetime.now(timezone.utc)


def clinic_today() -> date:
    """Fecha actual en la zona horaria de la clínica (CELERY_TIMEZONE)."""
    return datetime.now(ZoneInfo(settings.CELERY_TIMEZONE)).date()


def as_utc(value: datetime) -> datetime:
    """SQLite devuelve datetimes naive; se asumen en UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Dependency: sesión de DB ─────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency de FastAPI que provee una sesión de base de datos.
    Hace commit al finalizar la request y rollback si hubo error.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
