from __future__ import annotations


from datetime import date
from typing import List, Optional

from sqlalchemy import Column, JSON
from sqlmodel import Field

from hospital.models.base import TimestampMixin


class Patient(TimestampMixin, table=True):
    __tablename__ = "patients"

    id: Optional[int] = Field(default=None, primary_key=True)
    national_id: str = Field(unique=True, index=True, max_length=20)
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    date_of_birth: date
    gender: Optional[str] = Field(default=None, max_length=20)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None)
    blood_type: Optional[str] = Field(default=None, max_length=5)
    allergies: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
    )
    emergency_contact_name: Optional[str] = Field(default=None, max_length=200)
    emergency_contact_phone: Optional[str] = Field(default=None, max_length=20)
    emergency_contact_relationship: Optional[str] = Field(default=None, max_length=50)
    is_active: bool = Field(default=True, index=True)
