from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from hospital.models.base import as_naive_utc


class AppointmentCreate(BaseModel):
    patient_id: int
    doctor_id: int
    start_time: datetime
    duration_minutes: Optional[int] = None
    reason: Optional[str] = None

    @field_validator("start_time")
    @classmethod
    def _store_as_utc(cls, value: datetime) -> datetime:
        return as_naive_utc(value)


class AppointmentUpdate(BaseModel):
    start_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    reason: Optional[str] = None

    @field_validator("start_time")
    @classmethod
    def _store_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(value)


class AppointmentStatusUpdate(BaseModel):
    status: str
    cancellation_reason: Optional[str] = None


class AppointmentCancelRequest(BaseModel):
    cancellation_reason: Optional[str] = None


class AppointmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    start_time: datetime
    duration_minutes: int
    end_time: datetime
    reason: Optional[str]
    status: str
    cancelled_by: Optional[int]
    cancellation_reason: Optional[str]
    created_at: datetime
    updated_at: datetime
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    doctor_specialty: Optional[str] = None


class AppointmentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    start_time: datetime
    duration_minutes: int
    status: str
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    doctor_specialty: Optional[str] = None


class DoctorAvailability(BaseModel):
    doctor_id: int
    day: date
    available: bool
    slot_minutes: int
    slots: List[datetime]
    message: Optional[str] = None
