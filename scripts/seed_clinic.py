"""
Seed de una clínica con su administrador, un doctor y el catálogo inicial.

Uso:
    python scripts/seed_clinic.py "<nombre de la clínica>" <admin_email> <password>

Hace upsert de servicios por (clinic_id, name): si el servicio ya existe
actualiza precio, categoría y duración; si no existe, lo crea.
"""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

from sqlalchemy import select

# Agregar el directorio raíz al path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.security import hash_password  # noqa: E402
from app.database import async_session_factory, engine  # noqa: E402
from app.models.clinic import Clinic  # noqa: E402
from app.models.profile import Profile, UserRole  # noqa: E402
from app.models.service import Service, ServiceCategory  # noqa: E402


# (nombre, categoría, precio PHP, duración, descripción)
DEFAULT_SERVICES = [
    ("Dental Examination", ServiceCategory.GENERAL, 500, 30,
     "Comprehensive examination including X-rays and treatment planning."),
    ("Teeth Cleaning", ServiceCategory.GENERAL, 800, 45,
     "Professional cleaning to remove plaque and tartar buildup."),
    ("Fluoride Treatment", ServiceCategory.GENERAL, 400, 20,
     "Application of fluoride to strengthen teeth and prevent decay."),
    ("Dental Fillings", ServiceCategory.GENERAL, 1000, 60,
     "Restore damaged teeth with tooth-colored composite materials."),
    ("Teeth Whitening", ServiceCategory.COSMETIC, 3500, 90,
     "Professional whitening to remove stains and brighten your smile."),
    ("Dental Veneers", ServiceCategory.COSMETIC, 8000, 120,
     "Thin porcelain shells that cover the front surface of teeth."),
    ("Composite Bonding", ServiceCategory.COSMETIC, 2500, 60,
     "Repair damaged, discolored or gapped teeth using tooth-colored composite."),
    ("Braces Consultation", ServiceCategory.ORTHODONTICS, 1500, 45,
     "Initial assessment to determine if braces are right for you."),
    ("Traditional Braces", ServiceCategory.ORTHODONTICS, 45000, 60,
     "Metal brackets and wires to straighten teeth and correct bite issues."),
    ("Braces Adjustment", ServiceCategory.ORTHODONTICS, 800, 30,
     "Regular adjustments for patients with braces."),
    ("Simple Extraction", ServiceCategory.SURGERY, 1500, 45,
     "Removal of visible teeth that are accessible."),
    ("Surgical Extraction", ServiceCategory.SURGERY, 3500, 90,
     "Removal of teeth that are not easily accessible or partially erupted."),
    ("Root Canal Therapy", ServiceCategory.SURGERY, 5000, 120,
     "Treatment for infected tooth pulp to save the tooth."),
]


async def seed_clinic(name: str, admin_email: str, password: str) -> None:
    slug = Clinic.generate_slug(name)

    async with async_session_factory() as db:
        result = await db.execute(select(Clinic).where(Clinic.slug == slug))
        clinic = result.scalar_one_or_none()
        if clinic is None:
            clinic = Clinic(name=name, slug=slug)
            db.add(clinic)
            await db.flush()
            print(f"Clínica creada: {clinic.name} ({clinic.slug})")

        staff = [
            (admin_email, "Administrador", UserRole.ADMIN),
            (f"doctor.{admin_email}", "Doctor", UserRole.DOCTOR),
        ]
        for email, full_name, role in staff:
            result = await db.execute(select(Profile).where(Profile.email == email))
            if result.scalar_one_or_none() is None:
                db.add(Profile(
                    clinic_id=clinic.id,
                    email=email,
                    hashed_password=hash_password(password),
                    full_name=full_name,
                    role=role,
                ))
                print(f"Usuario creado: {email} ({role.value})")

        created = 0
        updated = 0
        for service_name, category, price, duration, description in DEFAULT_SERVICES:
            # Buscar si ya existe por nombre + clínica
            result = await db.execute(
                select(Service).where(
                    Service.clinic_id == clinic.id,
                    Service.name == service_name,
                )
            )
            existing = result.scalar_one_or_none()

            if existing:
                existing.category = category
                existing.price = Decimal(price)
                existing.duration_minutes = duration
                updated += 1
            else:
                db.add(Service(
                    clinic_id=clinic.id,
                    name=service_name,
                    description=description,
                    category=category,
                    price=Decimal(price),
                    duration_minutes=duration,
                    is_active=True,
                ))
                created += 1

        await db.commit()
        print(f"Seed completado: {created} servicios creados, {updated} actualizados.")

    await engine.dispose()


def main():
    if len(sys.argv) < 4:
        print('Uso: python scripts/seed_clinic.py "<nombre>" <admin_email> <password>')
        sys.exit(1)

    asyncio.run(seed_clinic(sys.argv[1], sys.argv[2].strip().lower(), sys.argv[3]))


if __name__ == "__main__":
    main()
