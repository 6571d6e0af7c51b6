from __future__ import annotations

from datetime import date

import pytest
from sqlmodel import Session

from hospital.core.errors import ConflictError, NotFoundError
from hospital.schemas import PatientCreate, PatientUpdate
from hospital.services import create_patient, deactivate_patient, get_patient, list_patients, update_patient


def test_create_and_read_patient(session: Session, audit_sink) -> None:
    created = create_patient(
        session,
        data=PatientCreate(
            national_id="12345678A",
            first_name="Lucia",
            last_name="Fernandez",
            date_of_birth=date(1990, 5, 17),
            allergies=["penicillin"],
        ),
        actor_id=None,
        audit_sink=audit_sink,
    )
    fetched = get_patient(session, created.id)
    assert fetched.national_id == "12345678A"
    assert fetched.allergies == ["penicillin"]
    assert fetched.is_active is True
    assert audit_sink.actions("patients") == ["create"]
    assert audit_sink.records[0].after["national_id"] == "12345678A"


def test_national_id_is_unique(session: Session, make_patient) -> None:
    make_patient(national_id="DUP-1")
    with pytest.raises(ConflictError) as excinfo:
        make_patient(national_id="DUP-1")
    assert excinfo.value.code == "NATIONAL_ID_TAKEN"


def test_search_matches_names_and_national_id(session: Session, make_patient) -> None:
    make_patient(first_name="Carmen", last_name="Lopez", national_id="X-100")
    make_patient(first_name="Pedro", last_name="Ruiz", national_id="Y-200")

    items, total = list_patients(session, search="lop")
    assert total == 1
    assert items[0].full_name == "Carmen Lopez"

    items, total = list_patients(session, search="y-2")
    assert [item.national_id for item in items] == ["Y-200"]


def test_update_patient_keeps_unset_fields(session: Session, patient: int) -> None:
    updated = update_patient(session, patient_id=patient, data=PatientUpdate(phone="600111222"), actor_id=None)
    assert updated.phone == "600111222"
    assert updated.first_name == "Ana"


def test_deactivated_patient_is_hidden(session: Session, patient: int, make_patient) -> None:
    make_patient()
    deactivate_patient(session, patient_id=patient, actor_id=None)

    with pytest.raises(NotFoundError) as excinfo:
        get_patient(session, patient)
    assert excinfo.value.code == "PATIENT_NOT_FOUND"

    _, active_total = list_patients(session)
    _, inactive_total = list_patients(session, active=False)
    assert (active_total, inactive_total) == (1, 1)
