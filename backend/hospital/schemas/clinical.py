from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hospital.models.base import as_naive_utc

ClinicalFileType = Literal["laboratory", "imaging", "prescription", "other"]


class _Vitals(BaseModel):
    weight_kg: Optional[Decimal] = Field(default=None, gt=0, max_digits=5, decimal_places=2)
    temperature_c: Optional[Decimal] = Field(default=None, ge=25, le=45, max_digits=4, decimal_places=1)
    systolic_pressure: Optional[int] = Field(default=None, gt=0, le=300)
    diastolic_pressure: Optional[int] = Field(default=None, gt=0, le=200)


class ClinicalRecordCreate(_Vitals):
    patient_id: int
    appointment_id: Optional[int] = None
    doctor_id: Optional[int] = None
    recorded_at: Optional[datetime] = None
    reason: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    prescription: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("recorded_at")
    @classmethod
    def _store_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(value)


class ClinicalRecordUpdate(_Vitals):
    """Fields left out, or sent as null, keep their stored value."""

    reason: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    prescription: Optional[str] = None
    notes: Optional[str] = None


class ClinicalFileCreate(BaseModel):
    file_type: ClinicalFileType = "other"
    name: Optional[str] = Field(default=None, max_length=255)
    original_name: str = Field(min_length=1, max_length=255)
    mime_type: str = Field(min_length=1, max_length=100)
    size_bytes: int = Field(gt=0)
    url: str = Field(min_length=1, max_length=500)


class ClinicalFileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    record_id: int
    file_type: str
    name: str
    original_name: str
    mime_type: str
    size_bytes: int
    url: str
    uploaded_by: Optional[int]
    created_at: datetime


class ClinicalRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    appointment_id: Optional[int]
    doctor_id: Optional[int]
    recorded_at: datetime
    reason: Optional[str]
    diagnosis: Optional[str]
    treatment: Optional[str]
    prescription: Optional[str]
    notes: Optional[str]
    weight_kg: Optional[Decimal]
    temperature_c: Optional[Decimal]
    systolic_pressure: Optional[int]
    diastolic_pressure: Optional[int]
    created_at: datetime
    updated_at: datetime
    doctor_name: Optional[str] = None
    doctor_specialty: Optional[str] = None


class ClinicalRecordDetail(ClinicalRecordRead):
    patient_name: Optional[str] = None
    patient_national_id: Optional[str] = None
    files: List[ClinicalFileRead] = Field(default_factory=list)
