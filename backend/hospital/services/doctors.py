from __future__ import annotations

import logging
from typing import List, Optional

from sqlmodel import Session, select

from hospital.core.config import Settings
from hospital.core.errors import ConflictError, NotFoundError, ValidationError
from hospital.db.session import transaction
from hospital.models import Doctor, DoctorScheduleRule
from hospital.schemas.doctor import (
    DoctorCreate,
    DoctorRead,
    DoctorUpdate,
    ScheduleRuleCreate,
    ScheduleRuleRead,
)
from hospital.services import audit

logger = logging.getLogger(__name__)


def get_active_doctor(session: Session, doctor_id: int) -> Doctor:
    doctor = session.get(Doctor, doctor_id)
    if not doctor or not doctor.is_active:
        raise NotFoundError("DOCTOR_NOT_FOUND", "Doctor not found")
    return doctor


def _ensure_unique_licence(session: Session, licence_number: str, exclude_id: Optional[int] = None) -> None:
    statement = select(Doctor.id).where(Doctor.licence_number == licence_number)
    if exclude_id is not None:
        statement = statement.where(Doctor.id != exclude_id)
    if session.exec(statement).first() is not None:
        raise ConflictError("LICENCE_TAKEN", "A doctor with this licence number already exists")


def list_doctors(
    session: Session,
    *,
    specialty: Optional[str] = None,
    active: bool = True,
) -> List[DoctorRead]:
    statement = select(Doctor).where(Doctor.is_active == active)
    if specialty:
        statement = statement.where(Doctor.specialty == specialty)
    statement = statement.order_by(Doctor.last_name, Doctor.first_name)
    return [DoctorRead.model_validate(doctor) for doctor in session.exec(statement).all()]


def list_specialties(session: Session) -> List[str]:
    statement = (
        select(Doctor.specialty)
        .where(Doctor.is_active == True)  # noqa: E712
        .distinct()
        .order_by(Doctor.specialty)
    )
    return list(session.exec(statement).all())


def get_doctor(session: Session, doctor_id: int) -> DoctorRead:
    return DoctorRead.model_validate(get_active_doctor(session, doctor_id))


def create_doctor(
    session: Session,
    *,
    data: DoctorCreate,
    settings: Settings,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> DoctorRead:
    with transaction(session):
        _ensure_unique_licence(session, data.licence_number)
        values = data.model_dump(exclude={"consultation_minutes"})
        doctor = Doctor(
            **values,
            consultation_minutes=data.consultation_minutes or settings.default_consultation_minutes,
        )
        session.add(doctor)
        session.flush()
        after = audit.snapshot(doctor)

    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="create",
            table_name="doctors",
            record_id=doctor.id,
            after=after,
            context=context or {},
        ),
    )
    session.refresh(doctor)
    return DoctorRead.model_validate(doctor)


def update_doctor(
    session: Session,
    *,
    doctor_id: int,
    data: DoctorUpdate,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> DoctorRead:
    with transaction(session):
        doctor = get_active_doctor(session, doctor_id)
        before = audit.snapshot(doctor)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "licence_number" in changes and changes["licence_number"] != doctor.licence_number:
            _ensure_unique_licence(session, changes["licence_number"], exclude_id=doctor.id)
        for field_name, value in changes.items():
            setattr(doctor, field_name, value)
        session.add(doctor)
        session.flush()
        after = audit.snapshot(doctor)

    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="update",
            table_name="doctors",
            record_id=doctor_id,
            before=before,
            after=after,
            context=context or {},
        ),
    )
    session.refresh(doctor)
    return DoctorRead.model_validate(doctor)


def deactivate_doctor(
    session: Session,
    *,
    doctor_id: int,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> None:
    with transaction(session):
        doctor = get_active_doctor(session, doctor_id)
        doctor.is_active = False
        session.add(doctor)

    logger.info("Doctor %s deactivated by %s", doctor_id, actor_id)
    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="delete",
            table_name="doctors",
            record_id=doctor_id,
            context=context or {},
        ),
    )


def list_schedule_rules(session: Session, doctor_id: int) -> List[ScheduleRuleRead]:
    get_active_doctor(session, doctor_id)
    statement = (
        select(DoctorScheduleRule)
        .where(
            DoctorScheduleRule.doctor_id == doctor_id,
            DoctorScheduleRule.is_active == True,  # noqa: E712
        )
        .order_by(DoctorScheduleRule.day_of_week, DoctorScheduleRule.start_time)
    )
    return [ScheduleRuleRead.model_validate(rule) for rule in session.exec(statement).all()]


def create_schedule_rule(
    session: Session,
    *,
    doctor_id: int,
    data: ScheduleRuleCreate,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> ScheduleRuleRead:
    if not 0 <= data.day_of_week <= 6:
        raise ValidationError("INVALID_DAY_OF_WEEK", "Day of week must be between 0 and 6")
    if data.start_time >= data.end_time:
        raise ValidationError("INVALID_TIME_RANGE", "Schedule start must be before its end")

    with transaction(session):
        get_active_doctor(session, doctor_id)
        rule = session.exec(
            select(DoctorScheduleRule).where(
                DoctorScheduleRule.doctor_id == doctor_id,
                DoctorScheduleRule.day_of_week == data.day_of_week,
                DoctorScheduleRule.start_time == data.start_time,
            )
        ).first()
        if rule is not None and rule.is_active:
            raise ConflictError("SCHEDULE_EXISTS", "A schedule already exists for this day and start time")
        if rule is None:
            rule = DoctorScheduleRule(
                doctor_id=doctor_id,
                day_of_week=data.day_of_week,
                start_time=data.start_time,
                end_time=data.end_time,
            )
        else:
            # The unique key still holds the retired row; bring it back.
            rule.end_time = data.end_time
            rule.is_active = True
        session.add(rule)
        session.flush()
        after = audit.snapshot(rule)

    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="create",
            table_name="doctor_schedule_rules",
            record_id=rule.id,
            after=after,
            context=context or {},
        ),
    )
    session.refresh(rule)
    return ScheduleRuleRead.model_validate(rule)


def deactivate_schedule_rule(
    session: Session,
    *,
    doctor_id: int,
    rule_id: int,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> None:
    with transaction(session):
        rule = session.get(DoctorScheduleRule, rule_id)
        if not rule or rule.doctor_id != doctor_id or not rule.is_active:
            raise NotFoundError("SCHEDULE_NOT_FOUND", "Schedule not found")
        rule.is_active = False
        session.add(rule)

    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="delete",
            table_name="doctor_schedule_rules",
            record_id=rule_id,
            context=context or {},
        ),
    )
