from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlmodel import Session, select

from hospital.core.errors import ConflictError, NotFoundError
from hospital.db.session import transaction
from hospital.models import Patient
from hospital.schemas.patient import PatientCreate, PatientRead, PatientSummary, PatientUpdate
from hospital.services import audit

logger = logging.getLogger(__name__)


def _build_patient_summary(patient: Patient) -> PatientSummary:
    full_name = f"{patient.first_name} {patient.last_name}".strip()
    return PatientSummary(
        id=patient.id,
        national_id=patient.national_id,
        full_name=full_name,
        date_of_birth=patient.date_of_birth,
        is_active=patient.is_active,
    )


def _get_active_patient(session: Session, patient_id: int) -> Patient:
    patient = session.get(Patient, patient_id)
    if not patient or not patient.is_active:
        raise NotFoundError("PATIENT_NOT_FOUND", "Patient not found")
    return patient


def _ensure_unique_national_id(session: Session, national_id: str, exclude_id: Optional[int] = None) -> None:
    statement = select(Patient.id).where(Patient.national_id == national_id)
    if exclude_id is not None:
        statement = statement.where(Patient.id != exclude_id)
    if session.exec(statement).first() is not None:
        raise ConflictError("NATIONAL_ID_TAKEN", "A patient with this national id already exists")


def list_patients(
    session: Session,
    *,
    page: int = 1,
    page_size: int = 25,
    search: Optional[str] = None,
    active: bool = True,
) -> Tuple[List[PatientSummary], int]:
    statement = select(Patient).where(Patient.is_active == active)
    count_stmt = select(func.count()).select_from(Patient).where(Patient.is_active == active)

    if search:
        pattern = f"%{search.strip().lower()}%"
        condition = or_(
            func.lower(Patient.first_name).like(pattern),
            func.lower(Patient.last_name).like(pattern),
            func.lower(Patient.national_id).like(pattern),
        )
        statement = statement.where(condition)
        count_stmt = count_stmt.where(condition)

    statement = statement.order_by(Patient.last_name, Patient.first_name, Patient.id)
    total = session.exec(count_stmt).one()
    items = session.exec(statement.offset((page - 1) * page_size).limit(page_size)).all()
    return [_build_patient_summary(item) for item in items], total


def get_patient(session: Session, patient_id: int) -> PatientRead:
    return PatientRead.model_validate(_get_active_patient(session, patient_id))


def create_patient(
    session: Session,
    *,
    data: PatientCreate,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> PatientRead:
    with transaction(session):
        _ensure_unique_national_id(session, data.national_id)
        patient = Patient(**data.model_dump())
        session.add(patient)
        session.flush()
        after = audit.snapshot(patient)

    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="create",
            table_name="patients",
            record_id=patient.id,
            after=after,
            context=context or {},
        ),
    )
    session.refresh(patient)
    return PatientRead.model_validate(patient)


def update_patient(
    session: Session,
    *,
    patient_id: int,
    data: PatientUpdate,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> PatientRead:
    with transaction(session):
        patient = _get_active_patient(session, patient_id)
        before = audit.snapshot(patient)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "national_id" in changes and changes["national_id"] != patient.national_id:
            _ensure_unique_national_id(session, changes["national_id"], exclude_id=patient.id)
        for field_name, value in changes.items():
            setattr(patient, field_name, value)
        session.add(patient)
        session.flush()
        after = audit.snapshot(patient)

    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="update",
            table_name="patients",
            record_id=patient_id,
            before=before,
            after=after,
            context=context or {},
        ),
    )
    session.refresh(patient)
    return PatientRead.model_validate(patient)


def deactivate_patient(
    session: Session,
    *,
    patient_id: int,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> None:
    with transaction(session):
        patient = _get_active_patient(session, patient_id)
        patient.is_active = False
        session.add(patient)

    logger.info("Patient %s deactivated by %s", patient_id, actor_id)
    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="delete",
            table_name="patients",
            record_id=patient_id,
            context=context or {},
        ),
    )
