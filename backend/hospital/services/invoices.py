from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from hospital.core.errors import NotFoundError, ValidationError
from hospital.db.session import transaction
from hospital.models import Appointment, Invoice, Patient
from hospital.schemas.invoice import InvoiceCreate, InvoiceRead
from hospital.services import audit

logger = logging.getLogger(__name__)

NUMBER_PREFIX = "INV-"


def invoice_number(invoice_id: int) -> str:
    return f"{NUMBER_PREFIX}{invoice_id:06d}"


def _build_invoice_read(invoice: Invoice, patient: Optional[Patient]) -> InvoiceRead:
    names = {"patient_name": f"{patient.first_name} {patient.last_name}"} if patient else {}
    return InvoiceRead.model_validate(invoice).model_copy(update=names)


def list_invoices(
    session: Session,
    *,
    page: int = 1,
    page_size: int = 25,
    patient_id: Optional[int] = None,
    payment_status: Optional[str] = None,
) -> Tuple[List[InvoiceRead], int]:
    statement = select(Invoice, Patient).join(Patient, Patient.id == Invoice.patient_id)
    count_stmt = select(func.count()).select_from(Invoice)
    if patient_id is not None:
        statement = statement.where(Invoice.patient_id == patient_id)
        count_stmt = count_stmt.where(Invoice.patient_id == patient_id)
    if payment_status:
        statement = statement.where(Invoice.payment_status == payment_status)
        count_stmt = count_stmt.where(Invoice.payment_status == payment_status)

    statement = statement.order_by(Invoice.created_at.desc(), Invoice.id.desc())
    total = session.exec(count_stmt).one()
    rows = session.exec(statement.offset((page - 1) * page_size).limit(page_size)).all()
    return [_build_invoice_read(invoice, patient) for invoice, patient in rows], total


def create_invoice(
    session: Session,
    *,
    data: InvoiceCreate,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> InvoiceRead:
    """Bill an active patient. The total is amount plus tax."""
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

        invoice = Invoice(
            patient_id=data.patient_id,
            appointment_id=data.appointment_id,
            concept=data.concept,
            amount=data.amount,
            tax=data.tax,
            total=data.amount + data.tax,
            notes=data.notes,
        )
        session.add(invoice)
        session.flush()
        invoice.number = invoice_number(invoice.id)
        session.add(invoice)
        session.flush()
        after = audit.snapshot(invoice)

    logger.info("Invoice %s issued to patient %s", invoice.number, invoice.patient_id)
    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="create",
            table_name="invoices",
            record_id=invoice.id,
            after=after,
            context=context or {},
        ),
    )
    session.refresh(invoice)
    return _build_invoice_read(invoice, patient)
