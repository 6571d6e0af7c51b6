from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, DateTime, Numeric, Text
from sqlmodel import Field

from hospital.models.base import TimestampMixin

CLINICAL_FILE_TYPES = ("laboratory", "imaging", "prescription", "other")


class ClinicalRecord(TimestampMixin, table=True):
    __tablename__ = "clinical_records"

    id: Optional[int] = Field(default=None, primary_key=True)
    patient_id: int = Field(foreign_key="patients.id", index=True)
    appointment_id: Optional[int] = Field(default=None, foreign_key="appointments.id", index=True)
    doctor_id: Optional[int] = Field(default=None, foreign_key="doctors.id")
    recorded_at: datetime = Field(sa_type=DateTime(), index=True)
    reason: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    diagnosis: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    treatment: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    prescription: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    weight_kg: Optional[Decimal] = Field(default=None, sa_type=Numeric(5, 2))
    temperature_c: Optional[Decimal] = Field(default=None, sa_type=Numeric(4, 1))
    systolic_pressure: Optional[int] = Field(default=None)
    diastolic_pressure: Optional[int] = Field(default=None)


class ClinicalFile(TimestampMixin, table=True):
    __tablename__ = "clinical_files"

    id: Optional[int] = Field(default=None, primary_key=True)
    record_id: int = Field(foreign_key="clinical_records.id", index=True)
    file_type: str = Field(default="other", max_length=30)
    name: str = Field(max_length=255)
    original_name: str = Field(max_length=255)
    mime_type: str = Field(max_length=100)
    size_bytes: int
    url: str = Field(max_length=500)
    uploaded_by: Optional[int] = Field(default=None, foreign_key="users.id")
