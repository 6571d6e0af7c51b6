from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from hospital.models import AuditEvent, Bed, Patient
from hospital.schemas import BedCreate
from hospital.services import BedOccupancyManager, audit


class ExplodingSink(audit.AuditSink):
    def __init__(self) -> None:
        self.attempts = 0

    def emit(self, record: audit.AuditRecord) -> None:
        self.attempts += 1
        raise RuntimeError("audit store offline")


def test_failing_sink_does_not_undo_the_operation(session: Session, patient: int) -> None:
    sink = ExplodingSink()
    manager = BedOccupancyManager(session, audit_sink=sink)

    created = manager.create_bed(BedCreate(number="A1", floor=3), actor_id=None)
    assigned = manager.assign(created.id, patient_id=patient, actor_id=None)

    assert assigned.state == "occupied"
    assert sink.attempts == 2
    session.expire_all()
    assert session.get(Bed, created.id).state == "occupied"


def test_emit_without_sink_is_a_no_op() -> None:
    audit.emit(None, audit.AuditRecord(actor_id=None, action="create", table_name="beds", record_id=1))
    audit.emit(audit.NULL_SINK, audit.AuditRecord(actor_id=None, action="create", table_name="beds", record_id=1))


def test_database_sink_writes_events(engine: Engine, session: Session) -> None:
    sink = audit.DatabaseAuditSink(engine)
    sink.emit(
        audit.AuditRecord(
            actor_id=7,
            action="assign",
            table_name="beds",
            record_id=3,
            before={"state": "available"},
            after={"state": "occupied", "patient_id": 11},
            context={"ip": "127.0.0.1"},
        )
    )
    sink.flush(timeout=5)

    events = session.exec(select(AuditEvent)).all()
    assert len(events) == 1
    assert events[0].after == {"state": "occupied", "patient_id": 11}
    assert events[0].context == {"ip": "127.0.0.1"}
    sink.close()


def test_closed_database_sink_drops_records(engine: Engine, session: Session) -> None:
    sink = audit.DatabaseAuditSink(engine)
    sink.close()
    sink.emit(audit.AuditRecord(actor_id=None, action="create", table_name="beds", record_id=1))
    assert session.exec(select(AuditEvent)).all() == []


def test_snapshot_is_json_ready(session: Session) -> None:
    patient = Patient(
        national_id="SNAP-1",
        first_name="Sara",
        last_name="Snap",
        date_of_birth=date(2000, 1, 2),
    )
    session.add(patient)
    session.commit()

    data = audit.snapshot(patient)
    assert data["national_id"] == "SNAP-1"
    assert data["date_of_birth"] == "2000-01-02"
    assert isinstance(data["created_at"], str)


@pytest.fixture
def stored_events(session: Session) -> None:
    for action, table_name, record_id, actor_id in [
        ("create", "beds", 1, 1),
        ("assign", "beds", 1, 2),
        ("create", "appointments", 5, 2),
    ]:
        session.add(AuditEvent(actor_id=actor_id, action=action, table_name=table_name, record_id=record_id))
    session.commit()


@pytest.mark.usefixtures("stored_events")
def test_query_events_filters(session: Session) -> None:
    items, total = audit.query_events(session, table_name="beds")
    assert total == 2
    assert {item.action for item in items} == {"create", "assign"}

    items, total = audit.query_events(session, actor_id=2, action="create")
    assert total == 1
    assert items[0].table_name == "appointments"

    items, total = audit.query_events(session, page=2, page_size=2)
    assert total == 3
    assert len(items) == 1


def test_disabled_audit_uses_shared_null_sink(settings) -> None:
    from hospital.main import create_app

    app = create_app(settings.model_copy(update={"audit_enabled": False}))
    try:
        assert app.state.audit_sink is audit.NULL_SINK
    finally:
        app.state.engine.dispose()
