from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InvoiceCreate(BaseModel):
    patient_id: int
    appointment_id: Optional[int] = None
    concept: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    tax: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    notes: Optional[str] = None


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    number: str
    patient_id: int
    appointment_id: Optional[int]
    concept: str
    amount: Decimal
    tax: Decimal
    total: Decimal
    payment_status: str
    payment_method: Optional[str]
    paid_at: Optional[datetime]
    notes: Optional[str]
    created_at: datetime
    patient_name: Optional[str] = None
