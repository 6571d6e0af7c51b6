"""Bed inventory and occupancy lifecycle.

A bed moves ``available -> occupied -> cleaning -> available`` through
:meth:`BedOccupancyManager.assign`, :meth:`~BedOccupancyManager.release` and
:meth:`~BedOccupancyManager.mark_available`. ``maintenance`` is reachable only
through an administrative update. Every occupancy opens a ledger record that
release closes, so a bed has an open record exactly while it is occupied.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, func
from sqlmodel import Session, select

from hospital.core.errors import ConflictError, NotFoundError
from hospital.db.session import lock_row, transaction
from hospital.models import BED_STATES, Bed, BedOccupancyRecord, Patient
from hospital.models.base import utcnow
from hospital.schemas.bed import (
    BedCreate,
    BedDetail,
    BedListResponse,
    BedOccupancyRead,
    BedRead,
    BedSummary,
    BedUpdate,
)
from hospital.services import audit

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10


class BedOccupancyManager:
    def __init__(self, session: Session, *, audit_sink: Optional[audit.AuditSink] = None) -> None:
        self.session = session
        self.audit_sink = audit_sink

    def _lock_bed(self, bed_id: int) -> Bed:
        lock_row(self.session, "beds", bed_id)
        statement = select(Bed).where(Bed.id == bed_id).with_for_update().execution_options(populate_existing=True)
        bed = self.session.exec(statement).first()
        if bed is None:
            raise NotFoundError("BED_NOT_FOUND", "Bed not found")
        return bed

    def _ensure_unique_number(self, number: str, floor: int, exclude_id: Optional[int] = None) -> None:
        statement = select(Bed.id).where(Bed.number == number, Bed.floor == floor)
        if exclude_id is not None:
            statement = statement.where(Bed.id != exclude_id)
        if self.session.exec(statement).first() is not None:
            raise ConflictError("BED_NUMBER_TAKEN", "A bed with this number already exists on this floor")

    def _emit(self, action: str, bed_id: int, actor_id: Optional[int], **kwargs) -> None:
        audit.emit(
            self.audit_sink,
            audit.AuditRecord(actor_id=actor_id, action=action, table_name="beds", record_id=bed_id, **kwargs),
        )

    def _read(self, bed: Bed) -> BedRead:
        self.session.refresh(bed)
        return BedRead.model_validate(bed)

    # -- inventory ---------------------------------------------------------

    def list_beds(
        self,
        *,
        state: Optional[str] = None,
        bed_type: Optional[str] = None,
        floor: Optional[int] = None,
    ) -> BedListResponse:
        statement = select(Bed)
        if state:
            statement = statement.where(Bed.state == state)
        if bed_type:
            statement = statement.where(Bed.type == bed_type)
        if floor is not None:
            statement = statement.where(Bed.floor == floor)
        beds = self.session.exec(statement.order_by(Bed.floor, Bed.number)).all()

        counts = {key: 0 for key in BED_STATES}
        for bed_state, count in self.session.exec(select(Bed.state, func.count()).group_by(Bed.state)).all():
            counts[bed_state] = count
        summary = BedSummary(total=sum(counts.values()), **counts)
        return BedListResponse(items=[BedRead.model_validate(bed) for bed in beds], summary=summary)

    def get_bed(self, bed_id: int) -> BedDetail:
        bed = self.session.get(Bed, bed_id)
        if bed is None:
            raise NotFoundError("BED_NOT_FOUND", "Bed not found")
        history = self.session.exec(
            select(BedOccupancyRecord)
            .where(BedOccupancyRecord.bed_id == bed_id)
            .order_by(BedOccupancyRecord.entered_at.desc(), BedOccupancyRecord.id.desc())
            .limit(HISTORY_LIMIT)
        ).all()
        detail = BedDetail.model_validate(bed)
        detail.history = [BedOccupancyRead.model_validate(entry) for entry in history]
        return detail

    def create_bed(
        self,
        data: BedCreate,
        *,
        actor_id: Optional[int],
        context: Optional[dict] = None,
    ) -> BedRead:
        with transaction(self.session):
            self._ensure_unique_number(data.number, data.floor)
            bed = Bed(number=data.number, floor=data.floor, type=data.type, description=data.description)
            self.session.add(bed)
            self.session.flush()
            after = audit.snapshot(bed)

        self._emit("create", bed.id, actor_id, after=after, context=context or {})
        return self._read(bed)

    def update_bed(
        self,
        bed_id: int,
        data: BedUpdate,
        *,
        actor_id: Optional[int],
        context: Optional[dict] = None,
    ) -> BedRead:
        with transaction(self.session):
            bed = self._lock_bed(bed_id)
            before = audit.snapshot(bed)
            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            if "number" in changes or "floor" in changes:
                self._ensure_unique_number(
                    changes.get("number", bed.number),
                    changes.get("floor", bed.floor),
                    exclude_id=bed.id,
                )
            new_state = changes.pop("state", None)
            if new_state is not None and new_state != bed.state:
                if bed.state == "occupied":
                    raise ConflictError("BED_OCCUPIED", "Release the bed before changing its state")
                bed.state = new_state
            for field_name, value in changes.items():
                setattr(bed, field_name, value)
            self.session.add(bed)
            self.session.flush()
            after = audit.snapshot(bed)

        self._emit("update", bed_id, actor_id, before=before, after=after, context=context or {})
        return self._read(bed)

    # -- occupancy ---------------------------------------------------------

    def assign(
        self,
        bed_id: int,
        *,
        patient_id: int,
        reason: Optional[str] = None,
        actor_id: Optional[int] = None,
        context: Optional[dict] = None,
    ) -> BedRead:
        with transaction(self.session):
            bed = self._lock_bed(bed_id)
            if bed.state != "available":
                raise ConflictError("BED_NOT_AVAILABLE", f"Bed is not available (state: {bed.state})")
            patient = self.session.get(Patient, patient_id)
            if patient is None or not patient.is_active:
                raise NotFoundError("PATIENT_NOT_FOUND", "Patient not found")

            now = utcnow()
            bed.state = "occupied"
            bed.current_patient_id = patient_id
            bed.assigned_at = now
            self.session.add(bed)
            self.session.add(
                BedOccupancyRecord(bed_id=bed_id, patient_id=patient_id, entered_at=now, reason=reason)
            )

        logger.info("Bed %s assigned to patient %s", bed_id, patient_id)
        self._emit(
            "assign",
            bed_id,
            actor_id,
            before={"state": "available"},
            after={"state": "occupied", "patient_id": patient_id},
            context=context or {},
        )
        return self._read(bed)

    def release(
        self,
        bed_id: int,
        *,
        reason: Optional[str] = None,
        actor_id: Optional[int] = None,
        context: Optional[dict] = None,
    ) -> BedRead:
        with transaction(self.session):
            bed = self._lock_bed(bed_id)
            if bed.state != "occupied":
                raise ConflictError("BED_NOT_OCCUPIED", f"Bed is not occupied (state: {bed.state})")
            patient_id = bed.current_patient_id

            now = utcnow()
            bed.state = "cleaning"
            bed.current_patient_id = None
            bed.released_at = now
            self.session.add(bed)

            open_records = self.session.exec(
                select(BedOccupancyRecord).where(
                    BedOccupancyRecord.bed_id == bed_id,
                    BedOccupancyRecord.patient_id == patient_id,
                    BedOccupancyRecord.exited_at == None,  # noqa: E711
                )
            ).all()
            for record in open_records:
                record.exited_at = now
                if reason is not None:
                    record.reason = reason
                self.session.add(record)

        logger.info("Bed %s released by patient %s", bed_id, patient_id)
        self._emit(
            "release",
            bed_id,
            actor_id,
            before={"state": "occupied", "patient_id": patient_id},
            after={"state": "cleaning"},
            context=context or {},
        )
        return self._read(bed)

    def mark_available(
        self,
        bed_id: int,
        *,
        actor_id: Optional[int] = None,
        context: Optional[dict] = None,
    ) -> BedRead:
        with transaction(self.session):
            bed = self._lock_bed(bed_id)
            if bed.state != "cleaning":
                raise ConflictError("BED_NOT_CLEANING", "Bed must be in cleaning to be marked available")
            bed.state = "available"
            self.session.add(bed)

        self._emit(
            "mark_available",
            bed_id,
            actor_id,
            before={"state": "cleaning"},
            after={"state": "available"},
            context=context or {},
        )
        return self._read(bed)

    def delete(
        self,
        bed_id: int,
        *,
        actor_id: Optional[int] = None,
        context: Optional[dict] = None,
    ) -> None:
        with transaction(self.session):
            bed = self._lock_bed(bed_id)
            if bed.state == "occupied":
                raise ConflictError("BED_OCCUPIED", "An occupied bed cannot be deleted")
            before = audit.snapshot(bed)
            self.session.exec(delete(BedOccupancyRecord).where(BedOccupancyRecord.bed_id == bed_id))
            self.session.delete(bed)

        logger.info("Bed %s deleted", bed_id)
        self._emit("delete", bed_id, actor_id, before=before, context=context or {})
