from __future__ import annotations

from datetime import datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DoctorBase(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    specialty: str = Field(min_length=1, max_length=100)
    licence_number: str = Field(min_length=1, max_length=50)
    phone: Optional[str] = None
    email: Optional[str] = None
    user_id: Optional[int] = None


class DoctorCreate(DoctorBase):
    consultation_minutes: Optional[int] = Field(default=None, gt=0)


class DoctorUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    specialty: Optional[str] = None
    licence_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    phone: Optional[str] = None
    email: Optional[str] = None
    consultation_minutes: Optional[int] = Field(default=None, gt=0)


class DoctorRead(DoctorBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    consultation_minutes: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ScheduleRuleCreate(BaseModel):
    # Range is checked by the service so the error carries the domain message.
    day_of_week: int
    start_time: time
    end_time: time


class ScheduleRuleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool
