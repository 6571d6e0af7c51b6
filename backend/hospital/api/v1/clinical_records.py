from __future__ import annotations

from typing import List

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
from hospital.schemas import (
    ClinicalFileCreate,
    ClinicalFileRead,
    ClinicalRecordCreate,
    ClinicalRecordDetail,
    ClinicalRecordRead,
    ClinicalRecordUpdate,
    MessageResponse,
    Pagination,
)
from hospital.services import (
    add_clinical_file,
    create_clinical_record,
    delete_clinical_file,
    get_clinical_record,
    list_clinical_files,
    list_patient_records,
    update_clinical_record,
)
from hospital.services.audit import AuditSink

router = APIRouter(prefix="/clinical-records", tags=["clinical-records"])


@router.get("/patient/{patient_id}", response_model=Pagination[ClinicalRecordRead])
def list_records_for_patient(
    patient_id: int,
    paging: PageParams = Depends(get_page_params),
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("clinical_records:read")),
) -> Pagination[ClinicalRecordRead]:
    try:
        items, total = list_patient_records(session, patient_id, page=paging.page, page_size=paging.page_size)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return Pagination[ClinicalRecordRead](items=items, page=paging.page, page_size=paging.page_size, total=total)


@router.post("/", response_model=ClinicalRecordRead, status_code=status.HTTP_201_CREATED)
def create_record(
    payload: ClinicalRecordCreate,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("clinical_records:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> ClinicalRecordRead:
    try:
        return create_clinical_record(
            session,
            data=payload,
            actor_id=current.id,
            actor_role=current.role,
            audit_sink=audit_sink,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{record_id}", response_model=ClinicalRecordDetail)
def get_record(
    record_id: int,
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("clinical_records:read")),
) -> ClinicalRecordDetail:
    try:
        return get_clinical_record(session, record_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{record_id}", response_model=ClinicalRecordRead)
def update_record(
    record_id: int,
    payload: ClinicalRecordUpdate,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("clinical_records:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> ClinicalRecordRead:
    try:
        return update_clinical_record(
            session,
            record_id=record_id,
            data=payload,
            actor_id=current.id,
            audit_sink=audit_sink,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{record_id}/files", response_model=List[ClinicalFileRead])
def list_record_files(
    record_id: int,
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("clinical_records:read")),
) -> List[ClinicalFileRead]:
    try:
        return list_clinical_files(session, record_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{record_id}/files", response_model=ClinicalFileRead, status_code=status.HTTP_201_CREATED)
def attach_record_file(
    record_id: int,
    payload: ClinicalFileCreate,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("clinical_records:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> ClinicalFileRead:
    try:
        return add_clinical_file(
            session,
            record_id=record_id,
            data=payload,
            actor_id=current.id,
            audit_sink=audit_sink,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{record_id}/files/{file_id}", response_model=MessageResponse)
def delete_record_file(
    record_id: int,
    file_id: int,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("clinical_records:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> MessageResponse:
    try:
        delete_clinical_file(
            session,
            record_id=record_id,
            file_id=file_id,
            actor_id=current.id,
            audit_sink=audit_sink,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return MessageResponse(detail="File deleted")
