from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field

from hospital.models.base import TimestampMixin

APPOINTMENT_STATUSES = ("pending", "confirmed", "cancelled", "completed", "no_show")


class Appointment(TimestampMixin, table=True):
    __tablename__ = "appointments"

    id: Optional[int] = Field(default=None, primary_key=True)
    patient_id: int = Field(foreign_key="patients.id", index=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    start_time: datetime = Field(sa_type=DateTime(), index=True)
    duration_minutes: int
    end_time: datetime = Field(sa_type=DateTime())
    reason: Optional[str] = Field(default=None)
    status: str = Field(default="pending", max_length=32, index=True)
    cancelled_by: Optional[int] = Field(default=None, foreign_key="users.id")
    cancellation_reason: Optional[str] = Field(default=None)
