"""
Tests de archivos de pacientes: subida con respaldo, cadena de descarga y
eliminación best-effort.
"""

import base64
from uuid import UUID

from app.services import patient_file_service
from app.services.patient_file_service import (
    build_fallback_url,
    build_storage_path,
    decode_data_url,
    sanitize_file_name,
)

API = "/api/v1"


async def _upload(client, headers, patient_id, name="radiografia.png",
                  content=b"\x89PNG-datos", content_type="image/png"):
    return await client.post(
        f"{API}/patient-files/patient/{patient_id}",
        files={"file": (name, content, content_type)},
        headers=headers,
    )


# ── Helpers puros ────────────────────────────────────

def test_storage_path_is_sanitized():
    patient_id = UUID("00000000-0000-0000-0000-000000000001")
    path = build_storage_path(patient_id, "rayos x (1).png", now_ms=1700000000000)
    assert path == f"{patient_id}/1700000000000_rayos_x__1_.png"
    assert sanitize_file_name("informe-final_v2.pdf") == "informe-final_v2.pdf"


def test_fallback_url_embeds_small_text_or_image():
    url, status = build_fallback_url("p/1_nota.txt", b"hola", "text/plain")
    assert status.value == "data_url"
    assert url == "data:text/plain;base64," + base64.b64encode(b"hola").decode()
    assert decode_data_url(url) == (b"hola", "text/plain")


def test_fallback_url_uses_placeholder_for_other_types():
    url, status = build_fallback_url("p/1_informe.pdf", b"%PDF", "application/pdf")
    assert status.value == "placeholder"
    assert url == "local://files/p/1_informe.pdf"


def test_decode_percent_encoded_data_url():
    assert decode_data_url("data:text/plain,hola%20mundo") == (b"hola mundo", "text/plain")


# ── Subida ───────────────────────────────────────────

async def test_upload_stores_object_and_public_url(
    client, storage, doctor_user, patient_user, auth_headers
):
    response = await _upload(client, auth_headers(doctor_user), patient_user.id)
    assert response.status_code == 201
    body = response.json()
    assert body["storage_status"] == "stored"
    assert body["warning"] is None
    assert body["uploader_type"] == "staff"
    assert body["file_path"].startswith(f"{patient_user.id}/")
    assert body["file_url"] == f"{storage.base_url}/public/{storage.bucket}/{body['file_path']}"
    assert storage.objects[body["file_path"]] == b"\x89PNG-datos"


async def test_upload_failure_keeps_row_with_data_url(
    client, storage, patient_user, auth_headers
):
    storage.fail_upload = True
    response = await _upload(
        client, auth_headers(patient_user), patient_user.id,
        name="nota.txt", content=b"me duele la muela", content_type="text/plain",
    )
    assert response.status_code == 201
    body = response.json()
    assert body["storage_status"] == "data_url"
    assert body["file_url"].startswith("data:text/plain;base64,")
    assert body["warning"]
    assert body["uploader_type"] == "patient"

    listed = await client.get(
        f"{API}/patient-files/patient/{patient_user.id}",
        headers=auth_headers(patient_user),
    )
    assert [f["id"] for f in listed.json()] == [body["id"]]


async def test_upload_failure_for_pdf_uses_placeholder(
    client, storage, doctor_user, patient_user, auth_headers
):
    storage.fail_upload = True
    response = await _upload(
        client, auth_headers(doctor_user), patient_user.id,
        name="informe.pdf", content=b"%PDF-1.4", content_type="application/pdf",
    )
    body = response.json()
    assert body["storage_status"] == "placeholder"
    assert body["file_url"] == f"local://files/{body['file_path']}"


async def test_upload_over_limit_is_422(
    client, doctor_user, patient_user, auth_headers, monkeypatch
):
    monkeypatch.setattr(patient_file_service.settings, "MAX_UPLOAD_BYTES", 4)
    response = await _upload(
        client, auth_headers(doctor_user), patient_user.id, content=b"12345"
    )
    assert response.status_code == 422


async def test_upload_over_limit_is_rejected_before_reading(
    client, doctor_user, patient_user, auth_headers, monkeypatch
):
    monkeypatch.setattr(patient_file_service.settings, "MAX_UPLOAD_BYTES", 4)
    calls = []

    async def recording_upload(*args, **kwargs):
        calls.append(kwargs)

    monkeypatch.setattr(patient_file_service, "upload_file", recording_upload)
    response = await _upload(
        client, auth_headers(doctor_user), patient_user.id, content=b"x" * 64
    )
    assert response.status_code == 422
    assert calls == []


async def test_patient_cannot_upload_for_another_patient(
    client, patient_user, other_patient, auth_headers
):
    response = await _upload(client, auth_headers(other_patient), patient_user.id)
    assert response.status_code == 403


# ── Cadena de descarga ───────────────────────────────

async def test_resolve_downloads_then_hits_cache(
    client, doctor_user, patient_user, auth_headers
):
    headers = auth_headers(doctor_user)
    file_id = (await _upload(client, headers, patient_user.id)).json()["id"]

    first = await client.get(f"{API}/patient-files/{file_id}/resolve", headers=headers)
    assert first.status_code == 200
    assert first.json()["method"] == "download"
    assert first.json()["transcript"][:2] == ["cache: sin entrada", "data_url: no aplica"]

    second = await client.get(f"{API}/patient-files/{file_id}/resolve", headers=headers)
    assert second.json()["method"] == "cache"
    assert second.json()["size"] == len(b"\x89PNG-datos")


async def test_resolve_falls_back_to_signed_url(
    client, storage, fetcher, doctor_user, patient_user, auth_headers
):
    headers = auth_headers(doctor_user)
    body = (await _upload(client, headers, patient_user.id)).json()
    storage.fail_download = True
    signed = f"{storage.base_url}/sign/{storage.bucket}/{body['file_path']}?token=abc"
    fetcher.responses[signed] = (b"firmado", "image/png")

    response = await client.get(f"{API}/patient-files/{body['id']}/content", headers=headers)
    assert response.status_code == 200
    assert response.content == b"firmado"
    assert response.headers["x-file-method"] == "signed_url"
    assert response.headers["content-type"] == "image/png"
    assert 'filename="radiografia.png"' in response.headers["content-disposition"]


async def test_download_header_keeps_non_latin_file_name(
    client, doctor_user, patient_user, auth_headers
):
    headers = auth_headers(doctor_user)
    body = (await _upload(client, headers, patient_user.id, name="X光片.png")).json()
    assert body["file_name"] == "X光片.png"

    response = await client.get(f"{API}/patient-files/{body['id']}/content", headers=headers)
    assert response.status_code == 200
    assert response.content == b"\x89PNG-datos"
    disposition = response.headers["content-disposition"]
    assert 'filename="X__.png"' in disposition
    assert "filename*=UTF-8''X%E5%85%89%E7%89%87.png" in disposition


async def test_resolve_falls_back_to_public_url_with_cache_buster(
    client, storage, fetcher, doctor_user, patient_user, auth_headers
):
    headers = auth_headers(doctor_user)
    body = (await _upload(client, headers, patient_user.id)).json()
    storage.fail_download = True
    storage.fail_signed_url = True
    fetcher.responses[body["file_url"]] = (b"publico", "image/png")

    response = await client.get(f"{API}/patient-files/{body['id']}/resolve", headers=headers)
    result = response.json()
    assert result["method"] == "public_url"
    assert result["transcript"][2].startswith("download: error")
    assert result["transcript"][3].startswith("signed_url: error")
    url, params = fetcher.calls[-1]
    assert url == body["file_url"]
    assert "t" in params


async def test_resolve_data_url_without_storage(
    client, storage, doctor_user, patient_user, auth_headers
):
    headers = auth_headers(doctor_user)
    storage.fail_upload = True
    body = (
        await _upload(
            client, headers, patient_user.id,
            name="nota.txt", content=b"sin red", content_type="text/plain",
        )
    ).json()

    response = await client.get(f"{API}/patient-files/{body['id']}/content", headers=headers)
    assert response.status_code == 200
    assert response.content == b"sin red"
    assert response.headers["x-file-method"] == "data_url"


async def test_resolve_all_methods_fail_returns_transcript(
    client, storage, doctor_user, patient_user, auth_headers
):
    headers = auth_headers(doctor_user)
    body = (await _upload(client, headers, patient_user.id)).json()
    storage.fail_download = True
    storage.fail_signed_url = True

    response = await client.get(f"{API}/patient-files/{body['id']}/resolve", headers=headers)
    assert response.status_code == 404
    detail = response.json()["detail"]
    assert [line.split(":")[0] for line in detail["transcript"]] == [
        "cache",
        "data_url",
        "download",
        "signed_url",
        "public_url",
        "stored_url",
        "raw_fetch",
    ]


async def test_placeholder_file_is_unresolvable(
    client, storage, doctor_user, patient_user, auth_headers
):
    headers = auth_headers(doctor_user)
    storage.fail_upload = True
    body = (
        await _upload(
            client, headers, patient_user.id,
            name="informe.pdf", content=b"%PDF", content_type="application/pdf",
        )
    ).json()

    response = await client.get(f"{API}/patient-files/{body['id']}/resolve", headers=headers)
    assert response.status_code == 404
    transcript = response.json()["detail"]["transcript"]
    assert transcript[-2:] == [
        "stored_url: no es una URL http(s)",
        "raw_fetch: no es una URL http(s)",
    ]


async def test_other_patient_cannot_read_file(
    client, doctor_user, patient_user, other_patient, auth_headers
):
    body = (await _upload(client, auth_headers(doctor_user), patient_user.id)).json()
    response = await client.get(
        f"{API}/patient-files/{body['id']}/content",
        headers=auth_headers(other_patient),
    )
    assert response.status_code == 403


# ── Eliminación ──────────────────────────────────────

async def test_delete_removes_object_and_row(
    client, storage, doctor_user, patient_user, auth_headers
):
    headers = auth_headers(doctor_user)
    body = (await _upload(client, headers, patient_user.id)).json()

    response = await client.delete(f"{API}/patient-files/{body['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["storage_removed"] is True
    assert storage.removed == [body["file_path"]]


async def test_delete_keeps_going_when_storage_fails(
    client, storage, doctor_user, patient_user, auth_headers
):
    headers = auth_headers(doctor_user)
    body = (await _upload(client, headers, patient_user.id)).json()
    storage.fail_remove = True

    response = await client.delete(f"{API}/patient-files/{body['id']}", headers=headers)
    assert response.status_code == 200
    result = response.json()
    assert result["storage_removed"] is False
    assert "permiso denegado" in result["warning"]

    listed = await client.get(
        f"{API}/patient-files/patient/{patient_user.id}", headers=headers
    )
    assert listed.json() == []
