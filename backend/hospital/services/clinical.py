"""Clinical records and the file attachments registered against them.

Records belong to a patient and optionally to the appointment they came out
of. When a doctor writes a record, the author is their own doctor profile;
other staff may name the doctor explicitly. Attachments are stored elsewhere,
this module keeps their metadata and enforces the accepted types and sizes.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from hospital.core.errors import NotFoundError, ValidationError
from hospital.core.permissions import DOCTOR
from hospital.db.session import transaction
from hospital.models import Appointment, ClinicalFile, ClinicalRecord, Doctor, Patient
from hospital.models.base import utcnow
from hospital.schemas.clinical import (
    ClinicalFileCreate,
    ClinicalFileRead,
    ClinicalRecordCreate,
    ClinicalRecordDetail,
    ClinicalRecordRead,
    ClinicalRecordUpdate,
)
from hospital.services import audit

logger = logging.getLogger(__name__)

MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024
ALLOWED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)


def _get_record(session: Session, record_id: int) -> ClinicalRecord:
    record = session.get(ClinicalRecord, record_id)
    if record is None:
        raise NotFoundError("CLINICAL_RECORD_NOT_FOUND", "Clinical record not found")
    return record


def _doctor_fields(doctor: Optional[Doctor]) -> dict:
    if doctor is None:
        return {}
    return {
        "doctor_name": f"{doctor.first_name} {doctor.last_name}",
        "doctor_specialty": doctor.specialty,
    }


def _build_record_read(
    session: Session, record: ClinicalRecord, doctor: Optional[Doctor] = None
) -> ClinicalRecordRead:
    if doctor is None and record.doctor_id is not None:
        doctor = session.get(Doctor, record.doctor_id)
    return ClinicalRecordRead.model_validate(record).model_copy(update=_doctor_fields(doctor))


def _resolve_author(
    session: Session,
    *,
    requested_doctor_id: Optional[int],
    actor_id: Optional[int],
    actor_role: Optional[str],
) -> Optional[int]:
    if actor_role == DOCTOR and actor_id is not None:
        own = session.exec(select(Doctor.id).where(Doctor.user_id == actor_id)).first()
        if own is not None:
            return own
    if requested_doctor_id is None:
        return None
    doctor = session.get(Doctor, requested_doctor_id)
    if doctor is None:
        raise NotFoundError("DOCTOR_NOT_FOUND", "Doctor not found")
    return doctor.id


def list_patient_records(
    session: Session,
    patient_id: int,
    *,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[ClinicalRecordRead], int]:
    """Records of one patient, newest first."""
    if session.get(Patient, patient_id) is None:
        raise NotFoundError("PATIENT_NOT_FOUND", "Patient not found")

    statement = (
        select(ClinicalRecord, Doctor)
        .join(Doctor, Doctor.id == ClinicalRecord.doctor_id, isouter=True)
        .where(ClinicalRecord.patient_id == patient_id)
        .order_by(ClinicalRecord.recorded_at.desc(), ClinicalRecord.id.desc())
    )
    count_stmt = (
        select(func.count()).select_from(ClinicalRecord).where(ClinicalRecord.patient_id == patient_id)
    )

    total = session.exec(count_stmt).one()
    rows = session.exec(statement.offset((page - 1) * page_size).limit(page_size)).all()
    return [_build_record_read(session, record, doctor) for record, doctor in rows], total


def get_clinical_record(session: Session, record_id: int) -> ClinicalRecordDetail:
    record = _get_record(session, record_id)
    patient = session.get(Patient, record.patient_id)
    summary = _build_record_read(session, record)
    return ClinicalRecordDetail(
        **summary.model_dump(),
        patient_name=f"{patient.first_name} {patient.last_name}" if patient else None,
        patient_national_id=patient.national_id if patient else None,
        files=list_clinical_files(session, record_id),
    )


def create_clinical_record(
    session: Session,
    *,
    data: ClinicalRecordCreate,
    actor_id: Optional[int],
    actor_role: Optional[str] = None,
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> ClinicalRecordRead:
    with transaction(session):
        patient = session.get(Patient, data.patient_id)
        if patient is None or not patient.is_active:
            raise NotFoundError("PATIENT_NOT_FOUND", "Patient not found")
        if data.appointment_id is not None:
            appointment = session.get(Appointment, data.appointment_id)
            if appointment is None:
                raise NotFoundError("APPOINTMENT_NOT_FOUND", "Appointment not found")
            if appointment.patient_id != data.patient_id:
                raise ValidationError(
                    "APPOINTMENT_PATIENT_MISMATCH", "Appointment belongs to another patient"
                )

        values = data.model_dump(exclude={"doctor_id", "recorded_at"})
        record = ClinicalRecord(
            **values,
            doctor_id=_resolve_author(
                session,
                requested_doctor_id=data.doctor_id,
                actor_id=actor_id,
                actor_role=actor_role,
            ),
            recorded_at=data.recorded_at or utcnow(),
        )
        session.add(record)
        session.flush()
        after = audit.snapshot(record)

    logger.info("Clinical record %s created for patient %s", record.id, record.patient_id)
    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="create",
            table_name="clinical_records",
            record_id=record.id,
            after=after,
            context=context or {},
        ),
    )
    session.refresh(record)
    return _build_record_read(session, record)


def update_clinical_record(
    session: Session,
    *,
    record_id: int,
    data: ClinicalRecordUpdate,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> ClinicalRecordRead:
    with transaction(session):
        record = _get_record(session, record_id)
        before = audit.snapshot(record)
        for field_name, value in data.model_dump(exclude_none=True).items():
            setattr(record, field_name, value)
        session.add(record)
        session.flush()
        after = audit.snapshot(record)

    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="update",
            table_name="clinical_records",
            record_id=record_id,
            before=before,
            after=after,
            context=context or {},
        ),
    )
    session.refresh(record)
    return _build_record_read(session, record)


# -- attachments -------------------------------------------------------------


def list_clinical_files(session: Session, record_id: int) -> List[ClinicalFileRead]:
    _get_record(session, record_id)
    files = session.exec(
        select(ClinicalFile)
        .where(ClinicalFile.record_id == record_id)
        .order_by(ClinicalFile.created_at, ClinicalFile.id)
    ).all()
    return [ClinicalFileRead.model_validate(item) for item in files]


def add_clinical_file(
    session: Session,
    *,
    record_id: int,
    data: ClinicalFileCreate,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> ClinicalFileRead:
    if data.mime_type.lower() not in ALLOWED_MIME_TYPES:
        raise ValidationError("FILE_TYPE_NOT_ALLOWED", f"Files of type {data.mime_type} are not accepted")
    if data.size_bytes > MAX_ATTACHMENT_BYTES:
        raise ValidationError("FILE_TOO_LARGE", "Attachments are limited to 10 MB")

    with transaction(session):
        _get_record(session, record_id)
        attachment = ClinicalFile(
            record_id=record_id,
            file_type=data.file_type,
            name=data.name or data.original_name,
            original_name=data.original_name,
            mime_type=data.mime_type.lower(),
            size_bytes=data.size_bytes,
            url=data.url,
            uploaded_by=actor_id,
        )
        session.add(attachment)
        session.flush()
        after = audit.snapshot(attachment)

    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="create",
            table_name="clinical_files",
            record_id=attachment.id,
            after=after,
            context=context or {},
        ),
    )
    session.refresh(attachment)
    return ClinicalFileRead.model_validate(attachment)


def delete_clinical_file(
    session: Session,
    *,
    record_id: int,
    file_id: int,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> None:
    with transaction(session):
        attachment = session.get(ClinicalFile, file_id)
        if attachment is None or attachment.record_id != record_id:
            raise NotFoundError("FILE_NOT_FOUND", "File not found")
        before = audit.snapshot(attachment)
        session.delete(attachment)

    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="delete",
            table_name="clinical_files",
            record_id=file_id,
            before=before,
            context=context or {},
        ),
    )
