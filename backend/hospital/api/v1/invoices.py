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
from hospital.schemas import InvoiceCreate, InvoiceRead, Pagination
from hospital.services import create_invoice, list_invoices
from hospital.services.audit import AuditSink

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("/", response_model=Pagination[InvoiceRead])
def list_invoice_records(
    paging: PageParams = Depends(get_page_params),
    patient_id: int | None = None,
    payment_status: str | None = None,
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("invoices:read")),
) -> Pagination[InvoiceRead]:
    items, total = list_invoices(
        session,
        page=paging.page,
        page_size=paging.page_size,
        patient_id=patient_id,
        payment_status=payment_status,
    )
    return Pagination[InvoiceRead](items=items, page=paging.page, page_size=paging.page_size, total=total)


@router.post("/", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
def create_invoice_record(
    payload: InvoiceCreate,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("invoices:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> InvoiceRead:
    try:
        return create_invoice(session, data=payload, actor_id=current.id, audit_sink=audit_sink, context=context)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
