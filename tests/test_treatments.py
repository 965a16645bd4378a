"""
Tests de tratamientos: validación de campos, orden, agrupación por diente y acceso.
"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from app import database
from app.database import clinic_today

API = "/api/v1"


def _payload(**overrides) -> dict:
    payload = {
        "procedure": "Filling",
        "tooth_number": 14,
        "diagnosis": "Caries oclusal",
        "notes": "Resina compuesta",
        "treatment_date": clinic_today().isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize(
    "overrides",
    [
        {"tooth_number": 1},
        {"tooth_number": 32},
        {"tooth_number": None},
        {"notes": "x" * 500},
        {"procedure": "X-Ray"},
    ],
)
async def test_create_accepts_boundaries(
    client, doctor_user, patient_user, auth_headers, overrides
):
    response = await client.post(
        f"{API}/treatments/patient/{patient_user.id}",
        json=_payload(**overrides),
        headers=auth_headers(doctor_user),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["doctor_name"] == doctor_user.full_name
    assert body["tooth_number"] == _payload(**overrides)["tooth_number"]


@pytest.mark.parametrize("zone", ["Pacific/Kiritimati", "Pacific/Pago_Pago"])
async def test_future_date_uses_clinic_time_zone(
    client, doctor_user, patient_user, auth_headers, monkeypatch, zone
):
    """'Hoy' es la fecha local de la clínica, no la del servidor."""
    monkeypatch.setattr(database.settings, "CELERY_TIMEZONE", zone)
    url = f"{API}/treatments/patient/{patient_user.id}"
    local_today = datetime.now(ZoneInfo(zone)).date()

    accepted = await client.post(
        url,
        json=_payload(treatment_date=local_today.isoformat()),
        headers=auth_headers(doctor_user),
    )
    assert accepted.status_code == 201

    rejected = await client.post(
        url,
        json=_payload(treatment_date=(local_today + timedelta(days=1)).isoformat()),
        headers=auth_headers(doctor_user),
    )
    assert rejected.status_code == 422


@pytest.mark.parametrize(
    "overrides",
    [
        {"procedure": ""},
        {"procedure": "Limpieza"},
        {"tooth_number": 0},
        {"tooth_number": 33},
        {"notes": "x" * 501},
        {"treatment_date": (clinic_today() + timedelta(days=1)).isoformat()},
    ],
)
async def test_create_rejects_invalid_fields(
    client, doctor_user, patient_user, auth_headers, overrides
):
    response = await client.post(
        f"{API}/treatments/patient/{patient_user.id}",
        json=_payload(**overrides),
        headers=auth_headers(doctor_user),
    )
    assert response.status_code == 422


async def test_list_is_newest_first(client, doctor_user, patient_user, auth_headers):
    headers = auth_headers(doctor_user)
    url = f"{API}/treatments/patient/{patient_user.id}"
    today = clinic_today()
    for days_ago, procedure in [(10, "Cleaning"), (0, "Crown"), (3, "Filling")]:
        await client.post(
            url,
            json=_payload(
                procedure=procedure,
                treatment_date=(today - timedelta(days=days_ago)).isoformat(),
            ),
            headers=headers,
        )

    response = await client.get(url, headers=headers)
    assert response.status_code == 200
    assert [t["procedure"] for t in response.json()] == ["Crown", "Filling", "Cleaning"]


async def test_by_tooth_groups_with_chart_symbol(
    client, doctor_user, patient_user, auth_headers
):
    headers = auth_headers(doctor_user)
    url = f"{API}/treatments/patient/{patient_user.id}"
    await client.patch(
        f"{API}/dental-charts/patient/{patient_user.id}",
        json={"edits": [{"op": "set_symbol", "tooth": 3, "symbol": "E"}]},
        headers=headers,
    )
    for tooth in (14, 3, None, 3):
        await client.post(url, json=_payload(tooth_number=tooth), headers=headers)

    response = await client.get(f"{url}/by-tooth", headers=headers)
    assert response.status_code == 200
    groups = response.json()
    assert [g["tooth_number"] for g in groups] == [3, 14, None]
    assert groups[0]["chart_symbol"] == "E"
    assert len(groups[0]["treatments"]) == 2
    assert groups[1]["chart_symbol"] == ""


async def test_update_overwrites_record(client, doctor_user, patient_user, auth_headers):
    headers = auth_headers(doctor_user)
    created = (
        await client.post(
            f"{API}/treatments/patient/{patient_user.id}",
            json=_payload(),
            headers=headers,
        )
    ).json()

    response = await client.put(
        f"{API}/treatments/{created['id']}",
        json=_payload(procedure="Root Canal", notes=None, diagnosis=None),
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["procedure"] == "Root Canal"
    assert body["notes"] is None


async def test_delete_requires_confirmation(client, doctor_user, patient_user, auth_headers):
    headers = auth_headers(doctor_user)
    created = (
        await client.post(
            f"{API}/treatments/patient/{patient_user.id}",
            json=_payload(),
            headers=headers,
        )
    ).json()
    url = f"{API}/treatments/{created['id']}"

    unconfirmed = await client.delete(url, headers=headers)
    assert unconfirmed.status_code == 422
    assert (await client.get(url, headers=headers)).status_code == 200

    confirmed = await client.delete(url, params={"confirm": "true"}, headers=headers)
    assert confirmed.status_code == 204
    assert (await client.get(url, headers=headers)).status_code == 404


async def test_patient_sees_only_own_treatments(
    client, doctor_user, patient_user, other_patient, auth_headers
):
    created = (
        await client.post(
            f"{API}/treatments/patient/{patient_user.id}",
            json=_payload(),
            headers=auth_headers(doctor_user),
        )
    ).json()

    own = await client.get(
        f"{API}/treatments/patient/{patient_user.id}",
        headers=auth_headers(patient_user),
    )
    assert own.status_code == 200
    assert len(own.json()) == 1

    foreign = await client.get(
        f"{API}/treatments/{created['id']}",
        headers=auth_headers(other_patient),
    )
    assert foreign.status_code == 403


async def test_staff_cannot_create_treatment(client, staff_user, patient_user, auth_headers):
    response = await client.post(
        f"{API}/treatments/patient/{patient_user.id}",
        json=_payload(),
        headers=auth_headers(staff_user),
    )
    assert response.status_code == 403
