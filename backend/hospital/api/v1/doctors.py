from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from hospital.api.deps import (
    AuthenticatedUser,
    get_audit_context,
    get_audit_sink,
    get_db,
    get_settings_dependency,
    require_permission,
    to_http_exception,
)
from hospital.core.config import Settings
from hospital.core.errors import ServiceError
from hospital.schemas import (
    DoctorCreate,
    DoctorRead,
    DoctorUpdate,
    MessageResponse,
    ScheduleRuleCreate,
    ScheduleRuleRead,
)
from hospital.services import (
    create_doctor,
    create_schedule_rule,
    deactivate_doctor,
    deactivate_schedule_rule,
    get_doctor,
    list_doctors,
    list_schedule_rules,
    list_specialties,
    update_doctor,
)
from hospital.services.audit import AuditSink

router = APIRouter(prefix="/doctors", tags=["doctors"])


@router.get("/", response_model=List[DoctorRead])
def list_doctor_records(
    specialty: str | None = None,
    active: bool = True,
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("doctors:read")),
) -> List[DoctorRead]:
    return list_doctors(session, specialty=specialty, active=active)


@router.get("/specialties", response_model=List[str])
def list_doctor_specialties(
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("doctors:read")),
) -> List[str]:
    return list_specialties(session)


@router.post("/", response_model=DoctorRead, status_code=status.HTTP_201_CREATED)
def create_doctor_record(
    payload: DoctorCreate,
    session: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
    current: AuthenticatedUser = Depends(require_permission("doctors:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> DoctorRead:
    try:
        return create_doctor(
            session,
            data=payload,
            settings=settings,
            actor_id=current.id,
            audit_sink=audit_sink,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{doctor_id}", response_model=DoctorRead)
def get_doctor_record(
    doctor_id: int,
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("doctors:read")),
) -> DoctorRead:
    try:
        return get_doctor(session, doctor_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{doctor_id}", response_model=DoctorRead)
def update_doctor_record(
    doctor_id: int,
    payload: DoctorUpdate,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("doctors:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> DoctorRead:
    try:
        return update_doctor(
            session,
            doctor_id=doctor_id,
            data=payload,
            actor_id=current.id,
            audit_sink=audit_sink,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{doctor_id}", response_model=MessageResponse)
def delete_doctor_record(
    doctor_id: int,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("doctors:delete")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> MessageResponse:
    try:
        deactivate_doctor(session, doctor_id=doctor_id, actor_id=current.id, audit_sink=audit_sink, context=context)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return MessageResponse(detail="Doctor deactivated")


@router.get("/{doctor_id}/schedules", response_model=List[ScheduleRuleRead])
def list_doctor_schedules(
    doctor_id: int,
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("doctors:read")),
) -> List[ScheduleRuleRead]:
    try:
        return list_schedule_rules(session, doctor_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{doctor_id}/schedules", response_model=ScheduleRuleRead, status_code=status.HTTP_201_CREATED)
def create_doctor_schedule(
    doctor_id: int,
    payload: ScheduleRuleCreate,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("doctors:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> ScheduleRuleRead:
    try:
        return create_schedule_rule(
            session,
            doctor_id=doctor_id,
            data=payload,
            actor_id=current.id,
            audit_sink=audit_sink,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{doctor_id}/schedules/{rule_id}", response_model=MessageResponse)
def delete_doctor_schedule(
    doctor_id: int,
    rule_id: int,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("doctors:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> MessageResponse:
    try:
        deactivate_schedule_rule(
            session,
            doctor_id=doctor_id,
            rule_id=rule_id,
            actor_id=current.id,
            audit_sink=audit_sink,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return MessageResponse(detail="Schedule removed")
