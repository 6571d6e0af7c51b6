from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from hospital.api.deps import (
    AuthenticatedUser,
    PageParams,
    get_audit_context,
    get_audit_sink,
    get_db,
    get_page_params,
    require_permission,
    to_http_exception,
)
from hospital.core.errors import ServiceError
from hospital.schemas import MessageResponse, Pagination, PatientCreate, PatientRead, PatientSummary, PatientUpdate
from hospital.services import create_patient, deactivate_patient, get_patient, list_patients, update_patient
from hospital.services.audit import AuditSink

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("/", response_model=Pagination[PatientSummary])
def list_patient_records(
    paging: PageParams = Depends(get_page_params),
    search: str | None = None,
    active: bool = True,
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("patients:read")),
) -> Pagination[PatientSummary]:
    items, total = list_patients(
        session,
        page=paging.page,
        page_size=paging.page_size,
        search=search,
        active=active,
    )
    return Pagination[PatientSummary](items=items, page=paging.page, page_size=paging.page_size, total=total)


@router.post("/", response_model=PatientRead, status_code=status.HTTP_201_CREATED)
def create_patient_record(
    payload: PatientCreate,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("patients:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> PatientRead:
    try:
        return create_patient(session, data=payload, actor_id=current.id, audit_sink=audit_sink, context=context)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{patient_id}", response_model=PatientRead)
def get_patient_record(
    patient_id: int,
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("patients:read")),
) -> PatientRead:
    try:
        return get_patient(session, patient_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{patient_id}", response_model=PatientRead)
def update_patient_record(
    patient_id: int,
    payload: PatientUpdate,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("patients:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> PatientRead:
    try:
        return update_patient(
            session,
            patient_id=patient_id,
            data=payload,
            actor_id=current.id,
            audit_sink=audit_sink,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{patient_id}", response_model=MessageResponse)
def delete_patient_record(
    patient_id: int,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("patients:delete")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> MessageResponse:
    try:
        deactivate_patient(
            session,
            patient_id=patient_id,
            actor_id=current.id,
            audit_sink=audit_sink,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return MessageResponse(detail="Patient deactivated")
