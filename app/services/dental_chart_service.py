"""
Servicio de odontograma: carga, guardado (upsert por paciente), ediciones
del editor, resumen para la ficha y vista imprimible.
"""

import logging
from collections import Counter
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.exceptions import NotFoundException
from app.database import clinic_today
from app.models.clinic import Clinic
from app.models.dental_chart import (
    DENTAL_HISTORY_KEYS,
    DENTAL_HISTORY_QUESTIONS,
    FLAG_SECTIONS,
    LEGEND,
    MEDICAL_HISTORY_QUESTIONS,
    PRINT_ROWS,
    DentalChart,
)
from app.models.profile import Profile
from app.schemas.dental_chart import (
    ChartedTooth,
    ChartEdit,
    DentalChartDocument,
    DentalChartPrintView,
    DentalChartResponse,
    DentalChartSummary,
    PrintClinicHeader,
    PrintFlag,
    PrintLegendEntry,
    PrintPatientBlock,
    PrintQuestion,
    PrintTooth,
    SetAnswerEdit,
    SetFlagEdit,
    SetSymbolEdit,
    ToothEntry,
)
from app.services.audit_service import log_action
from app.services.profile_service import get_patient_profile

logger = logging.getLogger(__name__)


# ── Ediciones del documento (puras) ──────────────────

def apply_edits(
    document: DentalChartDocument,
    edits: list[ChartEdit],
) -> DentalChartDocument:
    """
    Aplica las ediciones del editor sobre una copia del documento.
    El documento recibido no se modifica.
    """
    result = document.model_copy(deep=True)
    for edit in edits:
        if isinstance(edit, SetSymbolEdit):
            result.teeth[edit.tooth] = ToothEntry(symbol=edit.symbol)
        elif isinstance(edit, SetFlagEdit):
            result.flags(edit.section)[edit.label] = edit.value
        elif isinstance(edit, SetAnswerEdit):
            result.dental_history[edit.question] = edit.answer
    return result


# ── Helpers ──────────────────────────────────────────

async def _load_chart(
    db: AsyncSession,
    clinic_id: UUID,
    patient_id: UUID,
    *,
    for_update: bool = False,
) -> DentalChart | None:
    query = (
        select(DentalChart)
        .options(joinedload(DentalChart.author))
        .where(
            DentalChart.patient_id == patient_id,
            DentalChart.clinic_id == clinic_id,
        )
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update(of=DentalChart)
    result = await db.execute(query)
    return result.unique().scalar_one_or_none()


def _document_of(chart: DentalChart | None) -> DentalChartDocument:
    if chart is None:
        return DentalChartDocument()
    return DentalChartDocument.model_validate(chart.chart_data)


def _chart_to_response(patient_id: UUID, chart: DentalChart | None) -> DentalChartResponse:
    if chart is None:
        return DentalChartResponse(
            patient_id=patient_id,
            exists=False,
            chart_data=DentalChartDocument(),
        )
    return DentalChartResponse(
        patient_id=patient_id,
        exists=True,
        chart_data=_document_of(chart),
        created_by=chart.created_by,
        author_name=chart.author.full_name if chart.author else None,
        updated_at=chart.updated_at,
    )


async def get_chart_symbols(
    db: AsyncSession,
    clinic_id: UUID,
    patient_id: UUID,
) -> dict[int, str]:
    """Símbolo actual de cada diente (vacío si no hay odontograma)."""
    chart = await _load_chart(db, clinic_id, patient_id)
    document = _document_of(chart)
    return {number: entry.symbol for number, entry in document.teeth.items()}


# ── Cargar ───────────────────────────────────────────

async def get_chart(
    db: AsyncSession,
    clinic_id: UUID,
    patient_id: UUID,
) -> DentalChartResponse:
    """Documento normalizado del paciente, o el documento vacío por defecto."""
    await get_patient_profile(db, clinic_id, patient_id)
    chart = await _load_chart(db, clinic_id, patient_id)
    return _chart_to_response(patient_id, chart)


# ── Guardar (upsert) ─────────────────────────────────

async def save_chart(
    db: AsyncSession,
    user: Profile,
    patient_id: UUID,
    document: DentalChartDocument,
    ip_address: str | None = None,
) -> DentalChartResponse:
    """
    Guarda el documento completo (upsert por patient_id).
    Un nuevo guardado reemplaza al anterior; nunca se elimina.
    """
    await get_patient_profile(db, user.clinic_id, patient_id)
    chart = await _load_chart(db, user.clinic_id, patient_id, for_update=True)
    return await _store_chart(db, user, patient_id, chart, document, ip_address)


async def edit_chart(
    db: AsyncSession,
    user: Profile,
    patient_id: UUID,
    edits: list[ChartEdit],
    ip_address: str | None = None,
) -> DentalChartResponse:
    """Aplica un lote de ediciones sobre el documento guardado (o vacío) y lo guarda."""
    await get_patient_profile(db, user.clinic_id, patient_id)
    # La fila queda bloqueada desde la lectura hasta el guardado
    chart = await _load_chart(db, user.clinic_id, patient_id, for_update=True)
    document = apply_edits(_document_of(chart), edits)
    return await _store_chart(db, user, patient_id, chart, document, ip_address)


async def _store_chart(
    db: AsyncSession,
    user: Profile,
    patient_id: UUID,
    chart: DentalChart | None,
    document: DentalChartDocument,
    ip_address: str | None,
) -> DentalChartResponse:
    """Escribe el documento sobre la fila ya bloqueada (o la crea) y audita."""
    clinic_id = user.clinic_id
    old_data = chart.chart_data if chart else None
    new_data = document.to_storage()

    if chart is None:
        chart = DentalChart(
            clinic_id=clinic_id,
            patient_id=patient_id,
            chart_data=new_data,
            created_by=user.id,
        )
        db.add(chart)
        action = "create"
    else:
        # Asignar un dict nuevo para que SQLAlchemy detecte el cambio
        chart.chart_data = new_data
        chart.created_by = user.id
        action = "update"

    await db.flush()

    await log_action(
        db,
        clinic_id=clinic_id,
        user_id=user.id,
        entity="dental_chart",
        entity_id=str(chart.id),
        action=action,
        old_data=old_data,
        new_data=new_data,
        ip_address=ip_address,
    )
    logger.info(
        "Odontograma guardado patient_id=%s by=%s action=%s",
        patient_id, user.id, action,
    )

    chart = await _load_chart(db, clinic_id, patient_id)
    return _chart_to_response(patient_id, chart)



# ── Resumen ──────────────────────────────────────────

async def get_summary(
    db: AsyncSession,
    clinic_id: UUID,
    patient_id: UUID,
) -> DentalChartSummary:
    """Resumen para la ficha del paciente: dientes marcados y casillas activas."""
    await get_patient_profile(db, clinic_id, patient_id)
    chart = await _load_chart(db, clinic_id, patient_id)
    document = _document_of(chart)

    charted = [
        ChartedTooth(
            tooth_number=number,
            symbol=entry.symbol,
            description=LEGEND[entry.symbol],
        )
        for number, entry in sorted(document.teeth.items())
        if entry.symbol
    ]
    counts = Counter(tooth.symbol for tooth in charted)

    return DentalChartSummary(
        patient_id=patient_id,
        exists=chart is not None,
        charted_teeth=charted,
        symbol_counts=dict(sorted(counts.items())),
        checked={
            section: [label for label, value in document.flags(section).items() if value]
            for section in FLAG_SECTIONS
        },
        answered_questions=sum(
            1 for answer in document.dental_history.values() if answer.strip()
        ),
        author_name=chart.author.full_name if chart and chart.author else None,
        updated_at=chart.updated_at if chart else None,
    )


# ── Vista imprimible ─────────────────────────────────

async def get_print_view(
    db: AsyncSession,
    clinic_id: UUID,
    patient_id: UUID,
) -> DentalChartPrintView:
    """Estructura del formulario impreso (encabezado, paciente, filas, casillas)."""
    patient = await get_patient_profile(db, clinic_id, patient_id)
    clinic = await db.get(Clinic, clinic_id)
    if not clinic:
        raise NotFoundException("Clínica")

    chart = await _load_chart(db, clinic_id, patient_id)
    document = _document_of(chart)

    return DentalChartPrintView(
        clinic=PrintClinicHeader(
            name=clinic.name,
            dentist_name=clinic.dentist_name,
            address=clinic.address,
            phone=clinic.phone,
            email=clinic.email,
        ),
        patient=PrintPatientBlock(
            name=patient.full_name,
            nickname=patient.nickname,
            age=patient.age,
            sex=patient.gender[0].upper() if patient.gender else "",
            birthday=patient.birthday,
            address=patient.address,
            nationality=patient.nationality,
            occupation=patient.occupation,
            home_phone=patient.phone,
            office_phone=patient.office_phone,
            mobile=patient.phone,
            printed_on=clinic_today(),
        ),
        medical_history=[
            PrintQuestion(question=question) for question in MEDICAL_HISTORY_QUESTIONS
        ],
        dental_history=[
            PrintQuestion(key=key, question=question, answer=document.dental_history[key])
            for key, question in zip(DENTAL_HISTORY_KEYS, DENTAL_HISTORY_QUESTIONS)
        ],
        tooth_rows={
            row: [
                PrintTooth(tooth_number=n, symbol=document.teeth[n].symbol)
                for n in numbers
            ]
            for row, numbers in PRINT_ROWS.items()
        },
        legend=[
            PrintLegendEntry(symbol=symbol, description=description)
            for symbol, description in LEGEND.items()
        ],
        flags={
            section: [
                PrintFlag(label=label, checked=checked)
                for label, checked in document.flags(section).items()
            ]
            for section in FLAG_SECTIONS
        },
    )
