from __future__ import annotations

from decimal import Decimal

import pytest
from sqlmodel import Session

from hospital.core.errors import NotFoundError
from hospital.schemas import InvoiceCreate
from hospital.services import create_invoice, deactivate_patient, list_invoices


def _bill(session: Session, patient: int, amount: str, tax: str = "0", **kwargs):
    return create_invoice(
        session,
        data=InvoiceCreate(patient_id=patient, concept="Consultation", amount=Decimal(amount), tax=Decimal(tax)),
        actor_id=None,
        **kwargs,
    )


def test_invoice_totals_and_numbers(session: Session, patient: int, audit_sink) -> None:
    first = _bill(session, patient, "100.00", "18.00", audit_sink=audit_sink)
    second = _bill(session, patient, "45.50")

    assert first.total == Decimal("118.00")
    assert first.payment_status == "pending"
    assert first.patient_name == "Ana Patient1"
    assert (first.number, second.number) == ("INV-000001", "INV-000002")
    assert audit_sink.actions("invoices") == ["create"]


def test_invoice_list_newest_first(session: Session, make_patient) -> None:
    ana, ben = make_patient(), make_patient(first_name="Ben")
    _bill(session, ana, "10")
    _bill(session, ben, "20")

    items, total = list_invoices(session)
    assert total == 2
    assert [item.patient_name for item in items] == ["Ben Patient2", "Ana Patient1"]

    only_ana, ana_total = list_invoices(session, patient_id=ana)
    assert ana_total == 1
    assert only_ana[0].amount == Decimal("10")


def test_inactive_patient_cannot_be_billed(session: Session, patient: int) -> None:
    deactivate_patient(session, patient_id=patient, actor_id=None)
    with pytest.raises(NotFoundError) as excinfo:
        _bill(session, patient, "10")
    assert excinfo.value.code == "PATIENT_NOT_FOUND"
    assert list_invoices(session)[1] == 0
