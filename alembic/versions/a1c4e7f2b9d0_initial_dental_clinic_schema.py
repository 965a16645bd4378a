"""initial dental clinic schema

Revision ID: a1c4e7f2b9d0
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a1c4e7f2b9d0"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Los enums se guardan por nombre (comportamiento por defecto de sa.Enum)
userrole = sa.Enum("ADMIN", "DOCTOR", "STAFF", "PATIENT", name="userrole")
procedure = sa.Enum(
    "CLEANING", "FILLING", "EXTRACTION", "ROOT_CANAL", "CROWN", "BRIDGE",
    "IMPLANT", "WHITENING", "ORTHODONTICS", "CONSULTATION", "X_RAY", "OTHER",
    name="procedure",
)
storagestatus = sa.Enum("STORED", "DATA_URL", "PLACEHOLDER", name="storagestatus")
queuestatus = sa.Enum("WAITING", "SERVING", "COMPLETED", "CANCELLED", name="queuestatus")
servicecategory = sa.Enum(
    "GENERAL", "COSMETIC", "ORTHODONTICS", "SURGERY", "OTHER",
    name="servicecategory",
)


def _uuid_pk() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def _clinic_fk() -> sa.Column:
    return sa.Column(
        "clinic_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("clinics.id"),
        nullable=False,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # ── Clínicas y perfiles ──────────────────────────
    op.create_table(
        "clinics",
        _uuid_pk(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(250), nullable=False),
        sa.Column("dentist_name", sa.String(200), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("opening_hours", sa.String(200), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "is_active", sa.Boolean, nullable=False, server_default=sa.text("true")
        ),
        *_timestamps(),
    )
    op.create_index("ix_clinics_slug", "clinics", ["slug"], unique=True)

    op.create_table(
        "profiles",
        _uuid_pk(),
        _clinic_fk(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", userrole, nullable=False, server_default="PATIENT"),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("nickname", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("office_phone", sa.String(20), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("birthday", sa.Date, nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("nationality", sa.String(100), nullable=True),
        sa.Column("occupation", sa.String(100), nullable=True),
        sa.Column(
            "is_active", sa.Boolean, nullable=False, server_default=sa.text("true")
        ),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)
    op.create_index("ix_profiles_clinic_id", "profiles", ["clinic_id"])
    op.create_index("idx_profile_clinic_role", "profiles", ["clinic_id", "role"])

    # ── Auditoría ────────────────────────────────────
    op.create_table(
        "audit_log",
        _uuid_pk(),
        _clinic_fk(),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id"),
            nullable=True,
        ),
        sa.Column("entity", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("old_data", postgresql.JSONB, nullable=True),
        sa.Column("new_data", postgresql.JSONB, nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_audit_log_clinic_id", "audit_log", ["clinic_id"])
    op.create_index("ix_audit_log_user_id", "audit_log", ["user_id"])
    op.create_index("ix_audit_log_entity", "audit_log", ["entity"])
    op.create_index("ix_audit_log_action", "audit_log", ["action"])

    # ── Odontograma ──────────────────────────────────
    op.create_table(
        "dental_charts",
        _uuid_pk(),
        _clinic_fk(),
        sa.Column(
            "patient_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("chart_data", postgresql.JSONB, nullable=False),
        sa.Column(
            "created_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_dental_charts_clinic_id", "dental_charts", ["clinic_id"])

    # ── Tratamientos ─────────────────────────────────
    op.create_table(
        "treatments",
        _uuid_pk(),
        _clinic_fk(),
        sa.Column(
            "patient_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id"),
            nullable=False,
        ),
        sa.Column(
            "doctor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id"),
            nullable=True,
        ),
        sa.Column("procedure", procedure, nullable=False),
        sa.Column("tooth_number", sa.SmallInteger, nullable=True),
        sa.Column("diagnosis", sa.Text, nullable=True),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("treatment_date", sa.Date, nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "idx_treatment_patient_date", "treatments", ["patient_id", "treatment_date"]
    )
    op.create_index("idx_treatment_clinic", "treatments", ["clinic_id"])

    # ── Archivos del paciente ────────────────────────
    op.create_table(
        "patient_files",
        _uuid_pk(),
        _clinic_fk(),
        sa.Column(
            "patient_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id"),
            nullable=False,
        ),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_type", sa.String(100), nullable=True),
        sa.Column("file_size", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("file_url", sa.Text, nullable=True),
        sa.Column(
            "storage_status", storagestatus, nullable=False, server_default="STORED"
        ),
        sa.Column(
            "uploaded_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id"),
            nullable=True,
        ),
        sa.Column(
            "uploaded_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_patient_file_patient", "patient_files", ["patient_id", "uploaded_at"]
    )

    # ── Cola de atención ─────────────────────────────
    op.create_table(
        "queue",
        _uuid_pk(),
        _clinic_fk(),
        sa.Column(
            "patient_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id"),
            nullable=False,
        ),
        sa.Column("branch", sa.String(100), nullable=False, server_default="main"),
        sa.Column("queue_number", sa.Integer, nullable=False),
        sa.Column("status", queuestatus, nullable=False, server_default="WAITING"),
        sa.Column(
            "estimated_wait_time", sa.Integer, nullable=False, server_default="15"
        ),
        *_timestamps(),
    )
    op.create_index(
        "idx_queue_clinic_branch_status", "queue", ["clinic_id", "branch", "status"]
    )
    op.create_index(
        "uq_queue_clinic_number", "queue", ["clinic_id", "queue_number"], unique=True
    )
    # Una sola entrada en atención por sede
    op.create_index(
        "uq_queue_serving_per_branch",
        "queue",
        ["clinic_id", "branch"],
        unique=True,
        postgresql_where=sa.text("status = 'SERVING'"),
    )

    # ── Catálogo de servicios ────────────────────────
    op.create_table(
        "services",
        _uuid_pk(),
        _clinic_fk(),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "category", servicecategory, nullable=False, server_default="GENERAL"
        ),
        sa.Column("duration_minutes", sa.Integer, nullable=False, server_default="30"),
        sa.Column(
            "price",
            sa.Numeric(12, 2),
            nullable=False,
            server_default="0.00",
        ),
        sa.Column("price_min", sa.Numeric(12, 2), nullable=True),
        sa.Column("price_max", sa.Numeric(12, 2), nullable=True),
        sa.Column(
            "is_active", sa.Boolean, nullable=False, server_default=sa.text("true")
        ),
        *_timestamps(),
    )
    op.create_index("idx_service_clinic", "services", ["clinic_id"])
    op.create_index("idx_service_clinic_category", "services", ["clinic_id", "category"])
    op.create_unique_constraint(
        "uq_service_clinic_name", "services", ["clinic_id", "name"]
    )


def downgrade() -> None:
    op.drop_table("services")
    op.drop_table("queue")
    op.drop_table("patient_files")
    op.drop_table("treatments")
    op.drop_table("dental_charts")
    op.drop_table("audit_log")
    op.drop_table("profiles")
    op.drop_table("clinics")

    bind = op.get_bind()
    for enum_type in (servicecategory, queuestatus, storagestatus, procedure, userrole):
        enum_type.drop(bind, checkfirst=True)
