"""
Tests de configuración de cuenta: cambio de contraseña, formulario de
perfil y directorio de pacientes.
"""

from datetime import timedelta

import pytest

from app.database import clinic_today

API = "/api/v1"
TEST_PASSWORD = "secreto123"


def _password_payload(new_password: str, confirm: str | None = None, current=TEST_PASSWORD):
    return {
        "current_password": current,
        "new_password": new_password,
        "confirm_password": new_password if confirm is None else confirm,
    }


# ── Contraseña ───────────────────────────────────────

async def test_password_of_seven_chars_is_rejected(client, patient_user, auth_headers):
    response = await client.put(
        f"{API}/settings/password",
        json=_password_payload("1234567"),
        headers=auth_headers(patient_user),
    )
    assert response.status_code == 422


async def test_password_of_eight_chars_is_accepted(client, patient_user, auth_headers):
    response = await client.put(
        f"{API}/settings/password",
        json=_password_payload("12345678"),
        headers=auth_headers(patient_user),
    )
    assert response.status_code == 200

    old_login = await client.post(
        f"{API}/auth/login",
        json={"email": patient_user.email, "password": TEST_PASSWORD},
    )
    assert old_login.status_code == 401
    new_login = await client.post(
        f"{API}/auth/login",
        json={"email": patient_user.email, "password": "12345678"},
    )
    assert new_login.status_code == 200


async def test_password_confirmation_mismatch(client, patient_user, auth_headers):
    response = await client.put(
        f"{API}/settings/password",
        json=_password_payload("nueva-clave-1", confirm="nueva-clave-2"),
        headers=auth_headers(patient_user),
    )
    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"][-1] == "confirm_password"


async def test_wrong_current_password_is_reported_on_field(
    client, patient_user, auth_headers
):
    response = await client.put(
        f"{API}/settings/password",
        json=_password_payload("nueva-clave-1", current="no-es-la-clave"),
        headers=auth_headers(patient_user),
    )
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert "current_password" in detail["errors"]


# ── Perfil ───────────────────────────────────────────

def _profile_payload(**overrides) -> dict:
    payload = {
        "full_name": "Juan Dela Cruz",
        "email": "juan@correo.com",
        "phone": "0917 123 4567",
        "nickname": "Jun",
        "birthday": "1990-05-20",
        "gender": "male",
        "occupation": "Docente",
    }
    payload.update(overrides)
    return payload


async def test_update_own_profile(client, patient_user, auth_headers):
    response = await client.put(
        f"{API}/profiles/me",
        json=_profile_payload(email="  Juan.Nuevo@Correo.com "),
        headers=auth_headers(patient_user),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "juan.nuevo@correo.com"
    assert body["nickname"] == "Jun"
    assert body["age"] is not None

    me = await client.get(f"{API}/profiles/me", headers=auth_headers(patient_user))
    assert me.json()["occupation"] == "Docente"


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"full_name": "   "}, "full_name"),
        ({"email": "juan@correo"}, "email"),
        ({"email": ""}, "email"),
        ({"phone": "123456"}, "phone"),
        ({"phone": "1234567890123456"}, "phone"),
        ({"birthday": (clinic_today() + timedelta(days=1)).isoformat()}, "birthday"),
    ],
)
async def test_profile_form_validation(client, patient_user, auth_headers, overrides, field):
    response = await client.put(
        f"{API}/profiles/me",
        json=_profile_payload(**overrides),
        headers=auth_headers(patient_user),
    )
    assert response.status_code == 422
    assert {error["loc"][-1] for error in response.json()["detail"]} == {field}


async def test_phone_boundaries_are_accepted(client, patient_user, auth_headers):
    for phone in ("1234567", "123456789012345"):
        response = await client.put(
            f"{API}/profiles/me",
            json=_profile_payload(phone=phone),
            headers=auth_headers(patient_user),
        )
        assert response.status_code == 200


async def test_profile_email_taken_is_409(client, patient_user, other_patient, auth_headers):
    response = await client.put(
        f"{API}/profiles/me",
        json=_profile_payload(email=other_patient.email),
        headers=auth_headers(patient_user),
    )
    assert response.status_code == 409


# ── Directorio de pacientes ──────────────────────────

async def test_patient_directory_search(
    client, staff_user, patient_user, other_patient, auth_headers
):
    headers = auth_headers(staff_user)
    response = await client.get(f"{API}/profiles/patients", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [p["full_name"] for p in body["items"]] == ["Juan Dela Cruz", "Maria Santos"]

    found = await client.get(
        f"{API}/profiles/patients", params={"search": "santos"}, headers=headers
    )
    assert [p["id"] for p in found.json()["items"]] == [str(other_patient.id)]

    by_phone = await client.get(
        f"{API}/profiles/patients", params={"search": "0917123"}, headers=headers
    )
    assert [p["id"] for p in by_phone.json()["items"]] == [str(patient_user.id)]


async def test_patient_directory_is_staff_only(client, patient_user, auth_headers):
    response = await client.get(
        f"{API}/profiles/patients", headers=auth_headers(patient_user)
    )
    assert response.status_code == 403


async def test_get_patient_profile(client, doctor_user, patient_user, staff_user, auth_headers):
    response = await client.get(
        f"{API}/profiles/{patient_user.id}", headers=auth_headers(doctor_user)
    )
    assert response.status_code == 200
    assert response.json()["phone"] == "09171234567"

    not_patient = await client.get(
        f"{API}/profiles/{staff_user.id}", headers=auth_headers(doctor_user)
    )
    assert not_patient.status_code == 404
