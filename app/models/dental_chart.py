"""
Modelo DentalChart: Odontograma por paciente.

Un único documento JSON por paciente (upsert por patient_id) con la
notación de 32 dientes (1-32), la leyenda A-P y las casillas de
condiciones, aplicaciones, TMD y antecedentes del formulario impreso.
Nunca se elimina: un nuevo guardado reemplaza el documento completo.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, JSONDocument, utcnow

# ── Numeración ───────────────────────────────────────
TOOTH_NUMBERS = tuple(range(1, 33))

# Orden de impresión de las filas del formulario
PRINT_ROWS = {
    "upper_right": list(range(8, 0, -1)),
    "upper_left": list(range(9, 17)),
    "lower_right": list(range(25, 33)),
    "lower_left": list(range(24, 16, -1)),
}

# ── Leyenda (una letra por diente) ───────────────────
LEGEND = {
    "A": "Decayed (Caries Indicated for filling)",
    "B": "Missing due to caries",
    "C": "Caries Indicated for Extraction",
    "D": "Filled Fragment",
    "E": "Filled tooth for caries",
    "F": "Impacted Tooth",
    "G": "Jacket Crown",
    "H": "Abutment Filling",
    "I": "Pontic",
    "J": "Full Crown Prosthetic",
    "K": "Removable Denture",
    "L": "Extraction due to other causes",
    "M": "Congenitally missing",
    "N": "Supernumerary tooth",
    "O": "Root Fragment",
    "P": "Unerupted",
}

# ── Casillas del formulario ──────────────────────────
MEDICAL_CONDITIONS = (
    "High Blood Pressure",
    "Low Blood Pressure",
    "Epilepsy or Seizures",
    "AIDS or HIV Positive",
    "Sexually Transmitted Disease",
    "Stomach Troubles",
    "Fainting Spells",
    "Rapid Weight Loss",
    "Radiation Treatment",
    "Joint Replacement",
    "Heart Surgery",
    "Heart Attack",
    "Heart Murmur",
    "Heart Disease",
    "Heart Pacemaker",
    "Thyroid Problems",
    "Respiratory Problems",
    "Hepatitis/Liver Disease",
    "Rheumatic Fever",
    "Diabetes",
    "Chemotherapy",
    "Kidney Problems",
    "Tuberculosis",
    "Persistent Cough",
    "Bleeding Problems",
    "Blood Disease",
    "Head Injuries",
    "Arthritis or Rheumatism",
)

CONDITIONS = (
    "Gingivitis",
    "Early Periodontitis",
    "Moderate Periodontitis",
    "Advanced Periodontitis",
    "Cervical",
    "Chronic",
    "Operative",
    "Relative Periodontal",
    "Composite",
)

APPLICATIONS = (
    "Preventive",
    "Restorative",
    "Extraction",
    "Operative",
    "Bleaching",
    "Cosmetic",
)

TMD = ("Clenching", "Clicking", "Locking", "Muscle Spasm")

# Sección del documento → etiquetas válidas
FLAG_SECTIONS = {
    "medicalConditions": MEDICAL_CONDITIONS,
    "conditions": CONDITIONS,
    "applications": APPLICATIONS,
    "tmd": TMD,
}

# ── Antecedentes ─────────────────────────────────────
DENTAL_HISTORY_QUESTIONS = (
    "What is your chief dental concern?",
    "Previous Dentist:",
    "Last Dental Visit:",
    "Do you have toothache now?",
    "Do you clench or grind your teeth?",
    "Have you ever had serious trouble with any previous dental treatment?",
    "Have you ever had complications from anesthetics?",
)
DENTAL_HISTORY_KEYS = tuple(
    f"question_{i}" for i in range(len(DENTAL_HISTORY_QUESTIONS))
)

# Solo se imprimen; no tienen respuesta almacenada
MEDICAL_HISTORY_QUESTIONS = (
    "Are you under any form of medication? If yes, please specify",
    "Have you been hospitalized or seriously ill? If yes, when and why?",
    "Are you pregnant?",
    "Are you nursing?",
    "Are you taking birth control pills?",
    "Do you have or have you had any of the following? Check which apply:",
)


class DentalChart(Base):
    __tablename__ = "dental_charts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id"), nullable=False, index=True
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"),
        unique=True, nullable=False,
        comment="Un documento por paciente (clave del upsert)"
    )

    chart_data: Mapped[dict] = mapped_column(
        JSONDocument, nullable=False,
        comment="teeth, medicalConditions, conditions, applications, tmd, dentalHistory"
    )

    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"),
        comment="Último profesional que guardó el odontograma"
    )

    # ── Timestamps ───────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # ── Relaciones ───────────────────────────────────
    patient: Mapped["Profile"] = relationship(  # noqa: F821
        "Profile", foreign_keys=[patient_id]
    )
    author: Mapped["Profile | None"] = relationship(  # noqa: F821
        "Profile", foreign_keys=[created_by]
    )

    def __repr__(self) -> str:
        return f"<DentalChart patient={self.patient_id}>"
