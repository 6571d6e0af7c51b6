from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

import pytest
from sqlalchemy import func
from sqlmodel import Session, select

from hospital.core.config import Settings
from hospital.core.errors import ConflictError, NotFoundError, ValidationError
from hospital.models import Appointment
from hospital.schemas import AppointmentCreate, AppointmentUpdate, ScheduleRuleCreate
from hospital.services import AppointmentScheduler, create_schedule_rule, deactivate_doctor
from hospital.services.scheduler import day_of_week, overlaps

MONDAY = date(2024, 1, 1)
TUESDAY = date(2024, 1, 2)


def _at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return datetime.combine(day, time(hour, minute))


def _count_appointments(session: Session) -> int:
    return session.exec(select(func.count()).select_from(Appointment)).one()


@pytest.fixture
def scheduler(session: Session, settings: Settings, audit_sink) -> AppointmentScheduler:
    return AppointmentScheduler(session, settings=settings, audit_sink=audit_sink)


@pytest.fixture
def monday_doctor(session: Session, doctor: int) -> int:
    create_schedule_rule(
        session,
        doctor_id=doctor,
        data=ScheduleRuleCreate(day_of_week=1, start_time=time(9, 0), end_time=time(12, 0)),
        actor_id=None,
    )
    return doctor


def _book(scheduler: AppointmentScheduler, patient: int, doctor: int, start: datetime, **kwargs):
    return scheduler.create_appointment(
        AppointmentCreate(patient_id=patient, doctor_id=doctor, start_time=start, **kwargs),
        actor_id=None,
    )


def test_day_of_week_counts_from_sunday() -> None:
    assert day_of_week(date(2024, 1, 7)) == 0
    assert day_of_week(MONDAY) == 1
    assert day_of_week(date(2024, 1, 6)) == 6


def test_overlap_uses_half_open_intervals() -> None:
    assert not overlaps(_at(9), _at(9, 30), _at(9, 30), _at(10))
    assert overlaps(_at(9), _at(9, 30), _at(9, 15), _at(9, 45))
    assert overlaps(_at(9), _at(12), _at(10), _at(10, 30))


def test_availability_splits_schedule_into_consultation_slots(
    scheduler: AppointmentScheduler, monday_doctor: int, patient: int
) -> None:
    availability = scheduler.get_availability(monday_doctor, MONDAY)
    assert availability.available is True
    assert availability.slot_minutes == 30
    assert availability.slots == [_at(9), _at(9, 30), _at(10), _at(10, 30), _at(11), _at(11, 30)]

    _book(scheduler, patient, monday_doctor, _at(9))
    _book(scheduler, patient, monday_doctor, _at(10))

    availability = scheduler.get_availability(monday_doctor, MONDAY)
    assert availability.slots == [_at(9, 30), _at(10, 30), _at(11), _at(11, 30)]


def test_availability_is_read_only_and_repeatable(
    scheduler: AppointmentScheduler, session: Session, monday_doctor: int, patient: int
) -> None:
    _book(scheduler, patient, monday_doctor, _at(11))
    first = scheduler.get_availability(monday_doctor, MONDAY)
    second = scheduler.get_availability(monday_doctor, MONDAY)
    assert first == second
    assert _count_appointments(session) == 1


def test_availability_without_schedule_reports_unavailable(
    scheduler: AppointmentScheduler, monday_doctor: int
) -> None:
    availability = scheduler.get_availability(monday_doctor, TUESDAY)
    assert availability.available is False
    assert availability.slots == []
    assert availability.message


def test_availability_for_unknown_doctor(scheduler: AppointmentScheduler) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        scheduler.get_availability(999, MONDAY)
    assert excinfo.value.code == "DOCTOR_NOT_FOUND"


def test_fully_booked_day_is_unavailable(
    scheduler: AppointmentScheduler, monday_doctor: int, patient: int
) -> None:
    _book(scheduler, patient, monday_doctor, _at(9), duration_minutes=180)
    availability = scheduler.get_availability(monday_doctor, MONDAY)
    assert availability.available is False
    assert availability.slots == []


def test_create_defaults_duration_and_status(
    scheduler: AppointmentScheduler, monday_doctor: int, patient: int, audit_sink
) -> None:
    created = _book(scheduler, patient, monday_doctor, _at(9), reason="Check-up")
    assert created.status == "pending"
    assert created.duration_minutes == 30
    assert created.end_time == _at(9, 30)
    assert audit_sink.actions("appointments") == ["create"]
    assert audit_sink.records[-1].after["id"] == created.id


def test_overlapping_booking_is_rejected(
    scheduler: AppointmentScheduler, session: Session, monday_doctor: int, patient: int, audit_sink
) -> None:
    _book(scheduler, patient, monday_doctor, _at(9))

    with pytest.raises(ConflictError) as excinfo:
        _book(scheduler, patient, monday_doctor, _at(9, 15))
    assert excinfo.value.code == "DOCTOR_OVERLAP"
    assert _count_appointments(session) == 1
    assert audit_sink.actions("appointments") == ["create"]

    back_to_back = _book(scheduler, patient, monday_doctor, _at(9, 30))
    assert back_to_back.start_time == _at(9, 30)


def test_cancelled_appointments_free_their_slot(
    scheduler: AppointmentScheduler, monday_doctor: int, patient: int, staff_user
) -> None:
    first = _book(scheduler, patient, monday_doctor, _at(9))
    scheduler.cancel_appointment(first.id, actor_id=staff_user.id, cancellation_reason="Sick")

    assert _at(9) in scheduler.get_availability(monday_doctor, MONDAY).slots
    replacement = _book(scheduler, patient, monday_doctor, _at(9))
    assert replacement.id != first.id


def test_unknown_patient_writes_nothing(
    scheduler: AppointmentScheduler, session: Session, monday_doctor: int
) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        _book(scheduler, 4242, monday_doctor, _at(9))
    assert excinfo.value.code == "PATIENT_NOT_FOUND"
    assert _count_appointments(session) == 0


def test_inactive_doctor_cannot_be_booked(
    scheduler: AppointmentScheduler, session: Session, monday_doctor: int, patient: int
) -> None:
    deactivate_doctor(session, doctor_id=monday_doctor, actor_id=None)
    with pytest.raises(NotFoundError) as excinfo:
        _book(scheduler, patient, monday_doctor, _at(9))
    assert excinfo.value.code == "DOCTOR_NOT_FOUND"


def test_non_positive_duration_is_invalid(
    scheduler: AppointmentScheduler, monday_doctor: int, patient: int
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        _book(scheduler, patient, monday_doctor, _at(9), duration_minutes=0)
    assert excinfo.value.code == "INVALID_DURATION"


def test_reschedule_ignores_own_slot_but_not_others(
    scheduler: AppointmentScheduler, monday_doctor: int, patient: int
) -> None:
    moving = _book(scheduler, patient, monday_doctor, _at(9))
    _book(scheduler, patient, monday_doctor, _at(10))

    moved = scheduler.update_appointment(moving.id, AppointmentUpdate(start_time=_at(9, 15)), actor_id=None)
    assert moved.start_time == _at(9, 15)
    assert moved.end_time == _at(9, 45)

    with pytest.raises(ConflictError):
        scheduler.update_appointment(moving.id, AppointmentUpdate(start_time=_at(9, 45)), actor_id=None)
    assert scheduler.get_appointment(moving.id).start_time == _at(9, 15)


def test_status_update_rejects_unknown_status(
    scheduler: AppointmentScheduler, monday_doctor: int, patient: int
) -> None:
    created = _book(scheduler, patient, monday_doctor, _at(9))
    with pytest.raises(ValidationError) as excinfo:
        scheduler.update_appointment_status(created.id, "teleported", actor_id=None)
    assert excinfo.value.code == "INVALID_STATUS"
    assert scheduler.get_appointment(created.id).status == "pending"


def test_status_update_for_missing_appointment(scheduler: AppointmentScheduler) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        scheduler.update_appointment_status(77, "confirmed", actor_id=None)
    assert excinfo.value.code == "APPOINTMENT_NOT_FOUND"


def test_cancellation_records_actor_and_reason(
    scheduler: AppointmentScheduler, monday_doctor: int, patient: int, staff_user, audit_sink
) -> None:
    created = _book(scheduler, patient, monday_doctor, _at(9))

    cancelled = scheduler.update_appointment_status(
        created.id,
        "cancelled",
        actor_id=staff_user.id,
        cancellation_reason="Patient called",
    )
    assert cancelled.status == "cancelled"
    assert cancelled.cancelled_by == staff_user.id
    assert cancelled.cancellation_reason == "Patient called"
    assert audit_sink.actions("appointments") == ["create", "cancel"]

    revived = scheduler.update_appointment_status(created.id, "confirmed", actor_id=staff_user.id)
    assert revived.status == "confirmed"
    assert revived.cancelled_by is None
    assert revived.cancellation_reason is None


def test_reviving_cancelled_appointment_checks_overlap(
    scheduler: AppointmentScheduler, monday_doctor: int, patient: int
) -> None:
    original = _book(scheduler, patient, monday_doctor, _at(9))
    scheduler.cancel_appointment(original.id, actor_id=None)
    _book(scheduler, patient, monday_doctor, _at(9))

    with pytest.raises(ConflictError) as excinfo:
        scheduler.update_appointment_status(original.id, "confirmed", actor_id=None)
    assert excinfo.value.code == "DOCTOR_OVERLAP"
    assert scheduler.get_appointment(original.id).status == "cancelled"


def test_status_overwrite_is_unrestricted_by_default(
    scheduler: AppointmentScheduler, monday_doctor: int, patient: int
) -> None:
    created = _book(scheduler, patient, monday_doctor, _at(9))
    scheduler.update_appointment_status(created.id, "completed", actor_id=None)
    reopened = scheduler.update_appointment_status(created.id, "pending", actor_id=None)
    assert reopened.status == "pending"


def test_strict_transitions_reject_leaving_terminal_state(
    session: Session, settings: Settings, monday_doctor: int, patient: int
) -> None:
    strict = AppointmentScheduler(
        session,
        settings=settings.model_copy(update={"strict_status_transitions": True}),
    )
    created = _book(strict, patient, monday_doctor, _at(9))
    strict.update_appointment_status(created.id, "confirmed", actor_id=None)
    strict.update_appointment_status(created.id, "completed", actor_id=None)

    with pytest.raises(ConflictError) as excinfo:
        strict.update_appointment_status(created.id, "pending", actor_id=None)
    assert excinfo.value.code == "INVALID_TRANSITION"


def test_list_appointments_filters_by_doctor_and_status(
    scheduler: AppointmentScheduler, monday_doctor: int, patient: int
) -> None:
    first = _book(scheduler, patient, monday_doctor, _at(9))
    _book(scheduler, patient, monday_doctor, _at(10))
    scheduler.cancel_appointment(first.id, actor_id=None)

    items, total = scheduler.list_appointments(doctor_id=monday_doctor, status="pending")
    assert total == 1
    assert items[0].start_time == _at(10)

    items, total = scheduler.list_appointments(start_from=_at(9), end_to=_at(9) + timedelta(minutes=59))
    assert total == 1
    assert items[0].id == first.id


def test_offset_start_time_is_stored_as_utc(
    session: Session, scheduler: AppointmentScheduler, doctor: int, make_patient
) -> None:
    first = _book(scheduler, make_patient(), doctor, _at(9))
    plus_one = timezone(timedelta(hours=1))

    with pytest.raises(ConflictError) as excinfo:
        _book(scheduler, make_patient(), doctor, datetime(2024, 1, 1, 10, 0, tzinfo=plus_one))
    assert excinfo.value.code == "DOCTOR_OVERLAP"

    moved = scheduler.update_appointment(
        first.id,
        AppointmentUpdate(start_time=datetime(2024, 1, 1, 12, 0, tzinfo=plus_one)),
        actor_id=None,
    )
    assert moved.start_time == _at(11)
    assert moved.end_time == _at(11, 30)
    stored = session.get(Appointment, first.id)
    assert stored.start_time.tzinfo is None
    assert stored.start_time == _at(11)


def test_reads_carry_patient_and_doctor_names(
    scheduler: AppointmentScheduler, doctor: int, patient: int
) -> None:
    created = _book(scheduler, patient, doctor, _at(9))
    assert created.patient_name == "Ana Patient1"
    assert created.doctor_name == "Gregory House"
    assert created.doctor_specialty == "Diagnostics"

    assert scheduler.get_appointment(created.id).doctor_name == "Gregory House"
    items, total = scheduler.list_appointments(doctor_id=doctor)
    assert total == 1
    assert (items[0].patient_name, items[0].doctor_name, items[0].doctor_specialty) == (
        "Ana Patient1",
        "Gregory House",
        "Diagnostics",
    )
