from __future__ import annotations

from datetime import time
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from hospital.models.base import TimestampMixin


class Doctor(TimestampMixin, table=True):
    __tablename__ = "doctors"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id")
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    specialty: str = Field(max_length=100, index=True)
    licence_number: str = Field(unique=True, index=True, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)
    consultation_minutes: int = Field(default=30)
    is_active: bool = Field(default=True, index=True)


class DoctorScheduleRule(SQLModel, table=True):
    """Recurring weekly availability window. ``day_of_week`` is 0 for Sunday."""

    __tablename__ = "doctor_schedule_rules"
    __table_args__ = (
        UniqueConstraint("doctor_id", "day_of_week", "start_time", name="uq_schedule_rule_slot"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool = Field(default=True)
