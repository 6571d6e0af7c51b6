from __future__ import annotations

from typing import Dict


def _create(client, headers: Dict[str, str], index: int) -> int:
    response = client.post(
        "/api/v1/patients/",
        json={
            "national_id": f"PAGE-{index}",
            "first_name": "Paged",
            "last_name": f"Patient{index}",
            "date_of_birth": "2001-02-03",
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_listing_is_paginated_and_clamped(client, admin_headers: Dict[str, str]) -> None:
    for index in range(3):
        _create(client, admin_headers, index)

    page = client.get("/api/v1/patients/", params={"page_size": 2}, headers=admin_headers).json()
    assert page["total"] == 3
    assert page["pages"] == 2
    assert len(page["items"]) == 2

    clamped = client.get("/api/v1/patients/", params={"page_size": 5000, "page": 0}, headers=admin_headers).json()
    assert clamped["page"] == 1
    assert clamped["page_size"] == 100


def test_duplicate_national_id_conflicts(client, admin_headers: Dict[str, str]) -> None:
    _create(client, admin_headers, 1)
    response = client.post(
        "/api/v1/patients/",
        json={"national_id": "PAGE-1", "first_name": "A", "last_name": "B", "date_of_birth": "2001-02-03"},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "NATIONAL_ID_TAKEN"


def test_only_administrators_deactivate_patients(client, admin_headers: Dict[str, str], headers_for) -> None:
    patient_id = _create(client, admin_headers, 7)

    assert client.delete(f"/api/v1/patients/{patient_id}", headers=headers_for("reception")).status_code == 403
    assert client.delete(f"/api/v1/patients/{patient_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/v1/patients/{patient_id}", headers=admin_headers).status_code == 404
