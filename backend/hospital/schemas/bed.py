from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

BedType = Literal["standard", "icu", "pediatric", "maternity"]
AdministrativeBedState = Literal["available", "cleaning", "maintenance"]


class BedCreate(BaseModel):
    number: str = Field(min_length=1, max_length=10)
    floor: int
    type: BedType = "standard"
    description: Optional[str] = None


class BedUpdate(BaseModel):
    number: Optional[str] = Field(default=None, min_length=1, max_length=10)
    floor: Optional[int] = None
    type: Optional[BedType] = None
    description: Optional[str] = None
    state: Optional[AdministrativeBedState] = None


class BedAssignRequest(BaseModel):
    patient_id: int
    reason: Optional[str] = None


class BedReleaseRequest(BaseModel):
    reason: Optional[str] = None


class BedRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    number: str
    floor: int
    type: str
    description: Optional[str]
    state: str
    current_patient_id: Optional[int]
    assigned_at: Optional[datetime]
    released_at: Optional[datetime]


class BedOccupancyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    bed_id: int
    patient_id: int
    entered_at: datetime
    exited_at: Optional[datetime]
    reason: Optional[str]


class BedDetail(BedRead):
    history: List[BedOccupancyRead] = Field(default_factory=list)


class BedSummary(BaseModel):
    total: int = 0
    available: int = 0
    occupied: int = 0
    cleaning: int = 0
    maintenance: int = 0


class BedListResponse(BaseModel):
    items: List[BedRead]
    summary: BedSummary
