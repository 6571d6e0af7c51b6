"""Appointment booking with per-doctor conflict detection.

Intervals are half-open: an appointment occupies ``[start_time, end_time)``
so back-to-back bookings do not collide. Every write that can create an
overlap locks the doctor row first, which serialises concurrent bookings for
the same doctor until the surrounding transaction ends.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy import and_, func
from sqlmodel import Session, select

from hospital.core.config import Settings, get_settings
from hospital.core.errors import ConflictError, NotFoundError, ValidationError
from hospital.db.session import lock_row, transaction
from hospital.models import APPOINTMENT_STATUSES, Appointment, Doctor, DoctorScheduleRule, Patient
from hospital.models.base import as_naive_utc
from hospital.schemas.appointment import (
    AppointmentCreate,
    AppointmentRead,
    AppointmentSummary,
    AppointmentUpdate,
    DoctorAvailability,
)
from hospital.services import audit

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"

# Only consulted when ``strict_status_transitions`` is enabled.
STATUS_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"confirmed", "cancelled", "completed", "no_show"}),
    "confirmed": frozenset({"cancelled", "completed", "no_show"}),
    "cancelled": frozenset(),
    "completed": frozenset(),
    "no_show": frozenset(),
}


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and start_b < end_a


def day_of_week(value: date) -> int:
    """Weekday number used by schedule rules: 0 is Sunday, 6 is Saturday."""
    return (value.weekday() + 1) % 7


class AppointmentScheduler:
    def __init__(
        self,
        session: Session,
        *,
        settings: Optional[Settings] = None,
        audit_sink: Optional[audit.AuditSink] = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.audit_sink = audit_sink

    # -- lookups -----------------------------------------------------------

    def _lock_doctor(self, doctor_id: int, *, active_only: bool = True) -> Doctor:
        lock_row(self.session, "doctors", doctor_id)
        statement = (
            select(Doctor)
            .where(Doctor.id == doctor_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        doctor = self.session.exec(statement).first()
        if doctor is None or (active_only and not doctor.is_active):
            raise NotFoundError("DOCTOR_NOT_FOUND", "Doctor not found")
        return doctor

    def _require_patient(self, patient_id: int) -> Patient:
        patient = self.session.get(Patient, patient_id)
        if patient is None or not patient.is_active:
            raise NotFoundError("PATIENT_NOT_FOUND", "Patient not found")
        return patient

    def _load_appointment(self, appointment_id: int, *, for_update: bool = False) -> Appointment:
        statement = select(Appointment).where(Appointment.id == appointment_id)
        if for_update:
            lock_row(self.session, "appointments", appointment_id)
            statement = statement.with_for_update().execution_options(populate_existing=True)
        appointment = self.session.exec(statement).first()
        if appointment is None:
            raise NotFoundError("APPOINTMENT_NOT_FOUND", "Appointment not found")
        return appointment

    def _ensure_free(
        self,
        doctor_id: int,
        start_time: datetime,
        end_time: datetime,
        *,
        exclude_id: Optional[int] = None,
    ) -> None:
        statement = select(Appointment.id).where(
            Appointment.doctor_id == doctor_id,
            Appointment.status != CANCELLED,
            Appointment.start_time < end_time,
            Appointment.end_time > start_time,
        )
        if exclude_id is not None:
            statement = statement.where(Appointment.id != exclude_id)
        conflict_id = self.session.exec(statement).first()
        if conflict_id is not None:
            logger.info(
                "Rejected booking for doctor %s at %s: overlaps appointment %s",
                doctor_id,
                start_time.isoformat(),
                conflict_id,
            )
            raise ConflictError("DOCTOR_OVERLAP", "Doctor already booked in that window")

    def _describe(
        self,
        schema,
        appointment: Appointment,
        *,
        patient: Optional[Patient] = None,
        doctor: Optional[Doctor] = None,
    ):
        """Serialise ``appointment`` with the patient and doctor display names filled in."""
        patient = patient or self.session.get(Patient, appointment.patient_id)
        doctor = doctor or self.session.get(Doctor, appointment.doctor_id)
        names = {}
        if patient is not None:
            names["patient_name"] = f"{patient.first_name} {patient.last_name}"
        if doctor is not None:
            names["doctor_name"] = f"{doctor.first_name} {doctor.last_name}"
            names["doctor_specialty"] = doctor.specialty
        return schema.model_validate(appointment).model_copy(update=names)

    def _emit(self, action: str, appointment_id: int, actor_id: Optional[int], **kwargs) -> None:
        audit.emit(
            self.audit_sink,
            audit.AuditRecord(
                actor_id=actor_id,
                action=action,
                table_name="appointments",
                record_id=appointment_id,
                **kwargs,
            ),
        )

    # -- queries -----------------------------------------------------------

    def list_appointments(
        self,
        *,
        page: int = 1,
        page_size: int = 25,
        doctor_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        status: Optional[str] = None,
        start_from: Optional[datetime] = None,
        end_to: Optional[datetime] = None,
    ) -> Tuple[List[AppointmentSummary], int]:
        start_from, end_to = as_naive_utc(start_from), as_naive_utc(end_to)
        filters = []
        if doctor_id:
            filters.append(Appointment.doctor_id == doctor_id)
        if patient_id:
            filters.append(Appointment.patient_id == patient_id)
        if status:
            filters.append(Appointment.status == status)
        if start_from:
            filters.append(Appointment.start_time >= start_from)
        if end_to:
            filters.append(Appointment.start_time <= end_to)

        statement = (
            select(Appointment, Patient, Doctor)
            .join(Patient, Patient.id == Appointment.patient_id)
            .join(Doctor, Doctor.id == Appointment.doctor_id)
        )
        count_stmt = select(func.count()).select_from(Appointment)
        if filters:
            statement = statement.where(and_(*filters))
            count_stmt = count_stmt.where(and_(*filters))

        statement = statement.order_by(Appointment.start_time.desc(), Appointment.id.desc())
        total = self.session.exec(count_stmt).one()
        rows = self.session.exec(statement.offset((page - 1) * page_size).limit(page_size)).all()
        return [
            self._describe(AppointmentSummary, appointment, patient=patient, doctor=doctor)
            for appointment, patient, doctor in rows
        ], total

    def get_appointment(self, appointment_id: int) -> AppointmentRead:
        return self._describe(AppointmentRead, self._load_appointment(appointment_id))

    def get_availability(self, doctor_id: int, on_date: date) -> DoctorAvailability:
        """Free consultation slots for ``doctor_id`` on ``on_date``.

        Slots are cut from each active schedule rule for that weekday in steps
        of the doctor's consultation length. A slot is offered when it fits in
        the rule window and does not overlap a non-cancelled appointment.
        Nothing is written.
        """
        doctor = self.session.get(Doctor, doctor_id)
        if doctor is None or not doctor.is_active:
            raise NotFoundError("DOCTOR_NOT_FOUND", "Doctor not found")
        slot_minutes = doctor.consultation_minutes or self.settings.default_consultation_minutes

        rules = self.session.exec(
            select(DoctorScheduleRule)
            .where(
                DoctorScheduleRule.doctor_id == doctor_id,
                DoctorScheduleRule.day_of_week == day_of_week(on_date),
                DoctorScheduleRule.is_active == True,  # noqa: E712
            )
            .order_by(DoctorScheduleRule.start_time)
        ).all()
        if not rules:
            return DoctorAvailability(
                doctor_id=doctor_id,
                day=on_date,
                available=False,
                slot_minutes=slot_minutes,
                slots=[],
                message="Doctor does not work on this day",
            )

        day_start = datetime.combine(on_date, time.min)
        day_end = day_start + timedelta(days=1)
        busy = self.session.exec(
            select(Appointment.start_time, Appointment.end_time).where(
                Appointment.doctor_id == doctor_id,
                Appointment.status != CANCELLED,
                Appointment.start_time < day_end,
                Appointment.end_time > day_start,
            )
        ).all()

        step = timedelta(minutes=slot_minutes)
        slots = set()
        for rule in rules:
            cursor = datetime.combine(on_date, rule.start_time)
            window_end = datetime.combine(on_date, rule.end_time)
            while cursor + step <= window_end:
                slot_end = cursor + step
                if not any(overlaps(cursor, slot_end, start, end) for start, end in busy):
                    slots.add(cursor)
                cursor = slot_end

        ordered = sorted(slots)
        return DoctorAvailability(
            doctor_id=doctor_id,
            day=on_date,
            available=bool(ordered),
            slot_minutes=slot_minutes,
            slots=ordered,
            message=None if ordered else "No free slots left on this day",
        )

    # -- writes ------------------------------------------------------------

    def create_appointment(
        self,
        data: AppointmentCreate,
        *,
        actor_id: Optional[int],
        context: Optional[dict] = None,
    ) -> AppointmentRead:
        if data.duration_minutes is not None and data.duration_minutes <= 0:
            raise ValidationError("INVALID_DURATION", "Duration must be a positive number of minutes")

        with transaction(self.session):
            self._require_patient(data.patient_id)
            doctor = self._lock_doctor(data.doctor_id)
            duration = data.duration_minutes or doctor.consultation_minutes
            end_time = data.start_time + timedelta(minutes=duration)
            self._ensure_free(doctor.id, data.start_time, end_time)

            appointment = Appointment(
                patient_id=data.patient_id,
                doctor_id=doctor.id,
                start_time=data.start_time,
                duration_minutes=duration,
                end_time=end_time,
                reason=data.reason,
                status="pending",
            )
            self.session.add(appointment)
            self.session.flush()
            after = audit.snapshot(appointment)

        logger.info(
            "Booked appointment %s for doctor %s at %s",
            appointment.id,
            data.doctor_id,
            data.start_time.isoformat(),
        )
        self._emit("create", appointment.id, actor_id, after=after, context=context or {})
        self.session.refresh(appointment)
        return self._describe(AppointmentRead, appointment)

    def update_appointment(
        self,
        appointment_id: int,
        data: AppointmentUpdate,
        *,
        actor_id: Optional[int],
        context: Optional[dict] = None,
    ) -> AppointmentRead:
        if data.duration_minutes is not None and data.duration_minutes <= 0:
            raise ValidationError("INVALID_DURATION", "Duration must be a positive number of minutes")

        with transaction(self.session):
            appointment = self._load_appointment(appointment_id, for_update=True)
            before = audit.snapshot(appointment)
            reschedule = data.start_time is not None or data.duration_minutes is not None
            if reschedule:
                if appointment.status == CANCELLED:
                    raise ConflictError("APPOINTMENT_CANCELLED", "Cancelled appointments cannot be rescheduled")
                self._lock_doctor(appointment.doctor_id, active_only=False)
                start_time = data.start_time or appointment.start_time
                duration = data.duration_minutes or appointment.duration_minutes
                end_time = start_time + timedelta(minutes=duration)
                self._ensure_free(appointment.doctor_id, start_time, end_time, exclude_id=appointment.id)
                appointment.start_time = start_time
                appointment.duration_minutes = duration
                appointment.end_time = end_time
            if data.reason is not None:
                appointment.reason = data.reason
            self.session.add(appointment)
            self.session.flush()
            after = audit.snapshot(appointment)

        self._emit("update", appointment_id, actor_id, before=before, after=after, context=context or {})
        self.session.refresh(appointment)
        return self._describe(AppointmentRead, appointment)

    def update_appointment_status(
        self,
        appointment_id: int,
        new_status: str,
        *,
        actor_id: Optional[int],
        cancellation_reason: Optional[str] = None,
        context: Optional[dict] = None,
    ) -> AppointmentRead:
        if new_status not in APPOINTMENT_STATUSES:
            raise ValidationError("INVALID_STATUS", "Invalid appointment status")

        with transaction(self.session):
            appointment = self._load_appointment(appointment_id, for_update=True)
            previous = appointment.status
            if self.settings.strict_status_transitions and new_status not in STATUS_TRANSITIONS.get(previous, ()):
                raise ConflictError(
                    "INVALID_TRANSITION",
                    f"Appointment cannot move from {previous} to {new_status}",
                )
            if previous == CANCELLED and new_status != CANCELLED:
                # Reviving a cancelled booking must not land on top of a newer one.
                self._lock_doctor(appointment.doctor_id, active_only=False)
                self._ensure_free(
                    appointment.doctor_id,
                    appointment.start_time,
                    appointment.end_time,
                    exclude_id=appointment.id,
                )

            appointment.status = new_status
            if new_status == CANCELLED:
                appointment.cancelled_by = actor_id
                appointment.cancellation_reason = cancellation_reason
            else:
                appointment.cancelled_by = None
                appointment.cancellation_reason = None
            self.session.add(appointment)

        logger.info("Appointment %s status %s -> %s", appointment_id, previous, new_status)
        self._emit(
            "cancel" if new_status == CANCELLED else "update_status",
            appointment_id,
            actor_id,
            before={"status": previous},
            after={"status": new_status, "cancellation_reason": cancellation_reason},
            context=context or {},
        )
        self.session.refresh(appointment)
        return self._describe(AppointmentRead, appointment)

    def cancel_appointment(
        self,
        appointment_id: int,
        *,
        actor_id: Optional[int],
        cancellation_reason: Optional[str] = None,
        context: Optional[dict] = None,
    ) -> AppointmentRead:
        return self.update_appointment_status(
            appointment_id,
            CANCELLED,
            actor_id=actor_id,
            cancellation_reason=cancellation_reason,
            context=context,
        )
