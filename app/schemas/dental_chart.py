"""
Schemas para DentalChart: documento del odontograma (32 dientes, leyenda A-P).

El documento se serializa con las claves camelCase del formulario
(teeth, medicalConditions, conditions, applications, tmd, dentalHistory).
"""

from datetime import date, datetime
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.dental_chart import (
    DENTAL_HISTORY_KEYS,
    FLAG_SECTIONS,
    LEGEND,
    TOOTH_NUMBERS,
)


def _normalize_symbol(v: str | None) -> str:
    v = (v or "").strip().upper()
    if v and v not in LEGEND:
        raise ValueError(
            f"Símbolo inválido: '{v}'. Válidos: {', '.join(LEGEND)}"
        )
    return v


def _check_labels(section: str, flags: dict[str, bool]) -> dict[str, bool]:
    valid = FLAG_SECTIONS[section]
    unknown = [label for label in flags if label not in valid]
    if unknown:
        raise ValueError(f"Etiquetas inválidas en {section}: {', '.join(unknown)}")
    return flags


# ── Documento ────────────────────────────────────────

class ToothEntry(BaseModel):
    symbol: str = ""

    @field_validator("symbol", mode="before")
    @classmethod
    def validate_symbol(cls, v: str | None) -> str:
        return _normalize_symbol(v)


class DentalChartDocument(BaseModel):
    """
    Documento completo del odontograma.

    Tras la validación siempre está normalizado: los 32 dientes presentes,
    todas las casillas en False salvo las marcadas y todas las preguntas
    de antecedentes con respuesta ("" si no se contestó).
    """

    model_config = ConfigDict(populate_by_name=True)

    teeth: dict[int, ToothEntry] = Field(default_factory=dict)
    medical_conditions: dict[str, bool] = Field(
        default_factory=dict, alias="medicalConditions"
    )
    conditions: dict[str, bool] = Field(default_factory=dict)
    applications: dict[str, bool] = Field(default_factory=dict)
    tmd: dict[str, bool] = Field(default_factory=dict)
    dental_history: dict[str, str] = Field(
        default_factory=dict, alias="dentalHistory"
    )

    @field_validator("teeth")
    @classmethod
    def validate_teeth(cls, v: dict[int, ToothEntry]) -> dict[int, ToothEntry]:
        invalid = sorted(n for n in v if n not in TOOTH_NUMBERS)
        if invalid:
            raise ValueError(
                f"Números de diente inválidos: {invalid}. Rango válido: 1-32"
            )
        return v

    @field_validator("medical_conditions")
    @classmethod
    def validate_medical_conditions(cls, v: dict[str, bool]) -> dict[str, bool]:
        return _check_labels("medicalConditions", v)

    @field_validator("conditions")
    @classmethod
    def validate_conditions(cls, v: dict[str, bool]) -> dict[str, bool]:
        return _check_labels("conditions", v)

    @field_validator("applications")
    @classmethod
    def validate_applications(cls, v: dict[str, bool]) -> dict[str, bool]:
        return _check_labels("applications", v)

    @field_validator("tmd")
    @classmethod
    def validate_tmd(cls, v: dict[str, bool]) -> dict[str, bool]:
        return _check_labels("tmd", v)

    @field_validator("dental_history")
    @classmethod
    def validate_dental_history(cls, v: dict[str, str]) -> dict[str, str]:
        unknown = [key for key in v if key not in DENTAL_HISTORY_KEYS]
        if unknown:
            raise ValueError(
                f"Preguntas inválidas: {', '.join(unknown)}. "
                f"Válidas: question_0 a question_{len(DENTAL_HISTORY_KEYS) - 1}"
            )
        return v

    @model_validator(mode="after")
    def fill_defaults(self) -> "DentalChartDocument":
        self.teeth = {n: self.teeth.get(n, ToothEntry()) for n in TOOTH_NUMBERS}
        self.medical_conditions = {
            label: self.medical_conditions.get(label, False)
            for label in FLAG_SECTIONS["medicalConditions"]
        }
        self.conditions = {
            label: self.conditions.get(label, False)
            for label in FLAG_SECTIONS["conditions"]
        }
        self.applications = {
            label: self.applications.get(label, False)
            for label in FLAG_SECTIONS["applications"]
        }
        self.tmd = {
            label: self.tmd.get(label, False)
            for label in FLAG_SECTIONS["tmd"]
        }
        self.dental_history = {
            key: self.dental_history.get(key, "") for key in DENTAL_HISTORY_KEYS
        }
        return self

    def flags(self, section: str) -> dict[str, bool]:
        """Casillas de una sección por su clave camelCase."""
        return {
            "medicalConditions": self.medical_conditions,
            "conditions": self.conditions,
            "applications": self.applications,
            "tmd": self.tmd,
        }[section]

    def to_storage(self) -> dict:
        """Forma JSON persistida en dental_charts.chart_data."""
        return self.model_dump(mode="json", by_alias=True)


# ── Ediciones del editor (PATCH) ─────────────────────

class SetSymbolEdit(BaseModel):
    """Asigna un símbolo de la leyenda a un diente ("" lo limpia)."""
    op: Literal["set_symbol"]
    tooth: int = Field(..., ge=1, le=32)
    symbol: str = ""

    @field_validator("symbol", mode="before")
    @classmethod
    def validate_symbol(cls, v: str | None) -> str:
        return _normalize_symbol(v)


class SetFlagEdit(BaseModel):
    """Marca o desmarca una casilla de condición, aplicación o TMD."""
    op: Literal["set_flag"]
    section: Literal["medicalConditions", "conditions", "applications", "tmd"]
    label: str
    value: bool

    @model_validator(mode="after")
    def validate_label(self) -> "SetFlagEdit":
        if self.label not in FLAG_SECTIONS[self.section]:
            raise ValueError(f"Etiqueta inválida en {self.section}: '{self.label}'")
        return self


class SetAnswerEdit(BaseModel):
    """Responde una pregunta de antecedentes dentales."""
    op: Literal["set_answer"]
    question: str
    answer: str = Field("", max_length=2000)

    @field_validator("question")
    @classmethod
    def validate_question(cls, v: str) -> str:
        if v not in DENTAL_HISTORY_KEYS:
            raise ValueError(f"Pregunta inválida: '{v}'")
        return v


ChartEdit = Annotated[
    Union[SetSymbolEdit, SetFlagEdit, SetAnswerEdit],
    Field(discriminator="op"),
]


class ChartEditBatch(BaseModel):
    edits: list[ChartEdit] = Field(..., min_length=1)


# ── Respuestas ───────────────────────────────────────

class DentalChartResponse(BaseModel):
    patient_id: UUID
    exists: bool
    chart_data: DentalChartDocument
    created_by: UUID | None = None
    author_name: str | None = None
    updated_at: datetime | None = None


class ChartedTooth(BaseModel):
    tooth_number: int
    symbol: str
    description: str


class DentalChartSummary(BaseModel):
    """Resumen del odontograma para la ficha del paciente."""
    patient_id: UUID
    exists: bool
    charted_teeth: list[ChartedTooth]
    symbol_counts: dict[str, int]
    checked: dict[str, list[str]]
    answered_questions: int
    author_name: str | None = None
    updated_at: datetime | None = None


# ── Vista imprimible ─────────────────────────────────

class PrintClinicHeader(BaseModel):
    name: str
    dentist_name: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None


class PrintPatientBlock(BaseModel):
    name: str
    nickname: str | None = None
    age: int | None = None
    sex: str = ""
    birthday: date | None = None
    address: str | None = None
    nationality: str | None = None
    occupation: str | None = None
    home_phone: str | None = None
    office_phone: str | None = None
    mobile: str | None = None
    printed_on: date


class PrintQuestion(BaseModel):
    key: str | None = None
    question: str
    answer: str | None = None


class PrintTooth(BaseModel):
    tooth_number: int
    symbol: str


class PrintFlag(BaseModel):
    label: str
    checked: bool


class PrintLegendEntry(BaseModel):
    symbol: str
    description: str


class DentalChartPrintView(BaseModel):
    clinic: PrintClinicHeader
    patient: PrintPatientBlock
    medical_history: list[PrintQuestion]
    dental_history: list[PrintQuestion]
    tooth_rows: dict[str, list[PrintTooth]]
    legend: list[PrintLegendEntry]
    flags: dict[str, list[PrintFlag]]
