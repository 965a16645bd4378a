"""
Tests del odontograma: documento, ediciones por lote, resumen e impresión.
"""

import pytest
from pydantic import ValidationError

from app.database import clinic_today
from app.models.dental_chart import (
    APPLICATIONS,
    CONDITIONS,
    DENTAL_HISTORY_KEYS,
    MEDICAL_CONDITIONS,
    PRINT_ROWS,
    TMD,
)
from app.models.profile import UserRole
from app.schemas.dental_chart import (
    ChartEditBatch,
    DentalChartDocument,
    SetAnswerEdit,
    SetFlagEdit,
    SetSymbolEdit,
)
from app.services import dental_chart_service
from app.services.dental_chart_service import apply_edits

API = "/api/v1"


# ── Documento ────────────────────────────────────────

def test_empty_document_is_normalized():
    document = DentalChartDocument()
    assert sorted(document.teeth) == list(range(1, 33))
    assert all(entry.symbol == "" for entry in document.teeth.values())
    assert document.medical_conditions == {label: False for label in MEDICAL_CONDITIONS}
    assert document.conditions == {label: False for label in CONDITIONS}
    assert document.applications == {label: False for label in APPLICATIONS}
    assert document.tmd == {label: False for label in TMD}
    assert document.dental_history == {key: "" for key in DENTAL_HISTORY_KEYS}


def test_document_reads_stored_camel_case_form():
    document = DentalChartDocument.model_validate({
        "teeth": {"3": {"symbol": "a"}},
        "medicalConditions": {"Diabetes": True},
        "dentalHistory": {"question_0": "Dolor al masticar"},
    })
    assert document.teeth[3].symbol == "A"
    assert document.medical_conditions["Diabetes"] is True
    assert document.medical_conditions["Heart Disease"] is False

    stored = document.to_storage()
    assert stored["teeth"]["3"] == {"symbol": "A"}
    assert "medicalConditions" in stored
    assert stored["dentalHistory"]["question_0"] == "Dolor al masticar"


@pytest.mark.parametrize("tooth", [0, 33])
def test_document_rejects_teeth_outside_1_32(tooth):
    with pytest.raises(ValidationError):
        DentalChartDocument.model_validate({"teeth": {str(tooth): {"symbol": "A"}}})


def test_document_rejects_unknown_symbol_and_label():
    with pytest.raises(ValidationError):
        DentalChartDocument.model_validate({"teeth": {"1": {"symbol": "Z"}}})
    with pytest.raises(ValidationError):
        DentalChartDocument.model_validate({"tmd": {"Snoring": True}})


def test_apply_edits_does_not_mutate_original():
    original = DentalChartDocument()
    batch = ChartEditBatch.model_validate({
        "edits": [
            {"op": "set_symbol", "tooth": 14, "symbol": "e"},
            {"op": "set_flag", "section": "tmd", "label": "Clicking", "value": True},
            {"op": "set_answer", "question": "question_3", "answer": "No"},
        ]
    })
    edited = apply_edits(original, batch.edits)

    assert isinstance(batch.edits[0], SetSymbolEdit)
    assert isinstance(batch.edits[1], SetFlagEdit)
    assert isinstance(batch.edits[2], SetAnswerEdit)
    assert edited.teeth[14].symbol == "E"
    assert edited.tmd["Clicking"] is True
    assert edited.dental_history["question_3"] == "No"
    assert original.teeth[14].symbol == ""
    assert original.tmd["Clicking"] is False


def test_edit_batch_rejects_invalid_tooth_and_label():
    with pytest.raises(ValidationError):
        ChartEditBatch.model_validate(
            {"edits": [{"op": "set_symbol", "tooth": 33, "symbol": "A"}]}
        )
    with pytest.raises(ValidationError):
        ChartEditBatch.model_validate(
            {"edits": [{"op": "set_flag", "section": "conditions", "label": "Diabetes", "value": True}]}
        )
    with pytest.raises(ValidationError):
        ChartEditBatch.model_validate({"edits": []})


# ── API ──────────────────────────────────────────────

async def test_get_chart_without_document_returns_defaults(
    client, doctor_user, patient_user, auth_headers
):
    response = await client.get(
        f"{API}/dental-charts/patient/{patient_user.id}",
        headers=auth_headers(doctor_user),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["exists"] is False
    assert len(body["chart_data"]["teeth"]) == 32
    assert body["chart_data"]["medicalConditions"]["Diabetes"] is False


async def test_symbol_round_trip_for_every_tooth(
    client, doctor_user, patient_user, auth_headers
):
    """Cada diente 1-32 guarda su símbolo y se puede limpiar de nuevo."""
    headers = auth_headers(doctor_user)
    url = f"{API}/dental-charts/patient/{patient_user.id}"
    symbols = "ABCDEFGHIJKLMNOP"

    edits = [
        {"op": "set_symbol", "tooth": tooth, "symbol": symbols[(tooth - 1) % 16]}
        for tooth in range(1, 33)
    ]
    response = await client.patch(url, json={"edits": edits}, headers=headers)
    assert response.status_code == 200

    reloaded = (await client.get(url, headers=headers)).json()
    assert reloaded["exists"] is True
    assert reloaded["author_name"] == doctor_user.full_name
    for tooth in range(1, 33):
        assert reloaded["chart_data"]["teeth"][str(tooth)]["symbol"] == symbols[(tooth - 1) % 16]

    clear = [{"op": "set_symbol", "tooth": tooth, "symbol": ""} for tooth in range(1, 33)]
    await client.patch(url, json={"edits": clear}, headers=headers)
    cleared = (await client.get(url, headers=headers)).json()
    assert all(entry["symbol"] == "" for entry in cleared["chart_data"]["teeth"].values())


async def test_patch_reads_chart_with_row_lock(
    client, doctor_user, patient_user, auth_headers, monkeypatch
):
    """La lectura previa a aplicar ediciones bloquea la fila del odontograma."""
    original_load = dental_chart_service._load_chart
    calls: list[bool] = []

    async def recording_load(db, clinic_id, patient_id, *, for_update=False):
        calls.append(for_update)
        return await original_load(db, clinic_id, patient_id, for_update=for_update)

    monkeypatch.setattr(dental_chart_service, "_load_chart", recording_load)
    headers = auth_headers(doctor_user)
    url = f"{API}/dental-charts/patient/{patient_user.id}"

    for symbol in ("A", "B"):
        response = await client.patch(
            url,
            json={"edits": [{"op": "set_symbol", "tooth": 3, "symbol": symbol}]},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["chart_data"]["teeth"]["3"]["symbol"] == symbol

    # Por cada PATCH: una lectura bloqueada y la relectura final de la respuesta
    assert calls == [True, False, True, False]


async def test_put_replaces_whole_document(client, doctor_user, patient_user, auth_headers):
    headers = auth_headers(doctor_user)
    url = f"{API}/dental-charts/patient/{patient_user.id}"

    await client.put(
        url,
        json={"teeth": {"1": {"symbol": "A"}}, "conditions": {"Gingivitis": True}},
        headers=headers,
    )
    response = await client.put(url, json={"tmd": {"Locking": True}}, headers=headers)
    assert response.status_code == 200
    data = response.json()["chart_data"]
    # Un guardado completo reemplaza al anterior
    assert data["teeth"]["1"]["symbol"] == ""
    assert data["conditions"]["Gingivitis"] is False
    assert data["tmd"]["Locking"] is True


async def test_patch_with_tooth_33_is_422(client, doctor_user, patient_user, auth_headers):
    response = await client.patch(
        f"{API}/dental-charts/patient/{patient_user.id}",
        json={"edits": [{"op": "set_symbol", "tooth": 33, "symbol": "A"}]},
        headers=auth_headers(doctor_user),
    )
    assert response.status_code == 422


async def test_chart_mutations_require_clinical_role(
    client, staff_user, patient_user, auth_headers
):
    response = await client.patch(
        f"{API}/dental-charts/patient/{patient_user.id}",
        json={"edits": [{"op": "set_symbol", "tooth": 1, "symbol": "A"}]},
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 403

    read = await client.get(
        f"{API}/dental-charts/patient/{patient_user.id}",
        headers=auth_headers(staff_user),
    )
    assert read.status_code == 200


async def test_chart_for_non_patient_is_404(client, doctor_user, staff_user, auth_headers):
    response = await client.get(
        f"{API}/dental-charts/patient/{staff_user.id}",
        headers=auth_headers(doctor_user),
    )
    assert response.status_code == 404


async def test_summary_counts_and_patient_access(
    client, doctor_user, patient_user, other_patient, auth_headers
):
    await client.patch(
        f"{API}/dental-charts/patient/{patient_user.id}",
        json={"edits": [
            {"op": "set_symbol", "tooth": 3, "symbol": "A"},
            {"op": "set_symbol", "tooth": 14, "symbol": "A"},
            {"op": "set_symbol", "tooth": 30, "symbol": "E"},
            {"op": "set_flag", "section": "medicalConditions", "label": "Diabetes", "value": True},
            {"op": "set_answer", "question": "question_0", "answer": "Sensibilidad"},
        ]},
        headers=auth_headers(doctor_user),
    )

    own = await client.get(
        f"{API}/dental-charts/patient/{patient_user.id}/summary",
        headers=auth_headers(patient_user),
    )
    assert own.status_code == 200
    summary = own.json()
    assert [t["tooth_number"] for t in summary["charted_teeth"]] == [3, 14, 30]
    assert summary["symbol_counts"] == {"A": 2, "E": 1}
    assert summary["checked"]["medicalConditions"] == ["Diabetes"]
    assert summary["checked"]["tmd"] == []
    assert summary["answered_questions"] == 1

    other = await client.get(
        f"{API}/dental-charts/patient/{patient_user.id}/summary",
        headers=auth_headers(other_patient),
    )
    assert other.status_code == 403


async def test_print_view_rows_and_patient_block(
    client, doctor_user, make_profile, auth_headers
):
    patient = await make_profile(
        UserRole.PATIENT,
        "Rosa Aquino",
        gender="female",
        phone="0917 000 1111",
        nickname="Rosie",
    )
    await client.patch(
        f"{API}/dental-charts/patient/{patient.id}",
        json={"edits": [{"op": "set_symbol", "tooth": 8, "symbol": "G"}]},
        headers=auth_headers(doctor_user),
    )

    response = await client.get(
        f"{API}/dental-charts/patient/{patient.id}/print",
        headers=auth_headers(doctor_user),
    )
    assert response.status_code == 200
    view = response.json()

    for row, numbers in PRINT_ROWS.items():
        assert [t["tooth_number"] for t in view["tooth_rows"][row]] == numbers
    assert view["tooth_rows"]["upper_right"][0] == {"tooth_number": 8, "symbol": "G"}
    assert view["patient"]["sex"] == "F"
    assert view["patient"]["mobile"] == "0917 000 1111"
    assert view["patient"]["nickname"] == "Rosie"
    assert view["clinic"]["dentist_name"] == "Dra. Ana Silario"
    assert view["printed_on"] == clinic_today().isoformat()
    assert len(view["legend"]) == 16
    assert len(view["dental_history"]) == len(DENTAL_HISTORY_KEYS)
    assert len(view["flags"]["medicalConditions"]) == len(MEDICAL_CONDITIONS)

