from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Numeric
from sqlmodel import Field

from hospital.models.base import TimestampMixin

PAYMENT_STATUSES = ("pending", "paid", "void")


class Invoice(TimestampMixin, table=True):
    __tablename__ = "invoices"

    id: Optional[int] = Field(default=None, primary_key=True)
    # Assigned from the row id once the insert is flushed.
    number: Optional[str] = Field(default=None, unique=True, index=True, max_length=20)
    patient_id: int = Field(foreign_key="patients.id", index=True)
    appointment_id: Optional[int] = Field(default=None, foreign_key="appointments.id")
    concept: str = Field(max_length=255)
    amount: Decimal = Field(sa_type=Numeric(10, 2))
    tax: Decimal = Field(default=Decimal("0"), sa_type=Numeric(10, 2))
    total: Decimal = Field(sa_type=Numeric(10, 2))
    payment_status: str = Field(default="pending", max_length=20, index=True)
    payment_method: Optional[str] = Field(default=None, max_length=50)
    paid_at: Optional[datetime] = Field(default=None, sa_type=DateTime())
    notes: Optional[str] = Field(default=None)
