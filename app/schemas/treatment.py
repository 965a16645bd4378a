"""
Schemas para Treatment: historial de tratamientos.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.database import clinic_today
from app.models.treatment import Procedure


def _not_future(v: date) -> date:
    if v > clinic_today():
        raise ValueError("La fecha del tratamiento no puede ser futura")
    return v


class TreatmentCreate(BaseModel):
    procedure: Procedure
    tooth_number: int | None = Field(None, ge=1, le=32, description="Numeración universal 1-32")
    diagnosis: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=500)
    treatment_date: date

    @field_validator("treatment_date")
    @classmethod
    def validate_date(cls, v: date) -> date:
        return _not_future(v)


class TreatmentUpdate(TreatmentCreate):
    """Edición completa: sobrescribe todos los campos del registro."""


class TreatmentResponse(BaseModel):
    id: UUID
    clinic_id: UUID
    patient_id: UUID
    doctor_id: UUID | None = None
    doctor_name: str | None = None
    procedure: Procedure
    tooth_number: int | None = None
    diagnosis: str | None = None
    notes: str | None = None
    treatment_date: date
    created_at: datetime
    updated_at: datetime


class ToothTreatments(BaseModel):
    """Tratamientos agrupados por diente, con el símbolo del odontograma."""
    tooth_number: int | None = None
    chart_symbol: str = ""
    treatments: list[TreatmentResponse]
