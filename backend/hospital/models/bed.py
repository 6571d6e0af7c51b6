from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from hospital.models.base import TimestampMixin

BED_TYPES = ("standard", "icu", "pediatric", "maternity")
BED_STATES = ("available", "occupied", "cleaning", "maintenance")


class Bed(TimestampMixin, table=True):
    __tablename__ = "beds"
    __table_args__ = (UniqueConstraint("number", "floor", name="uq_bed_number_floor"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    number: str = Field(max_length=10)
    floor: int
    type: str = Field(default="standard", max_length=50)
    description: Optional[str] = Field(default=None)
    state: str = Field(default="available", max_length=30, index=True)
    current_patient_id: Optional[int] = Field(default=None, foreign_key="patients.id")
    assigned_at: Optional[datetime] = Field(default=None, sa_type=DateTime())
    released_at: Optional[datetime] = Field(default=None, sa_type=DateTime())


class BedOccupancyRecord(SQLModel, table=True):
    __tablename__ = "bed_occupancy_records"

    id: Optional[int] = Field(default=None, primary_key=True)
    bed_id: int = Field(foreign_key="beds.id", index=True)
    patient_id: int = Field(foreign_key="patients.id")
    entered_at: datetime = Field(sa_type=DateTime())
    exited_at: Optional[datetime] = Field(default=None, sa_type=DateTime())
    reason: Optional[str] = Field(default=None)
