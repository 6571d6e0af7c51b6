from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, DateTime, JSON
from sqlmodel import Field, SQLModel

from hospital.models.base import utcnow


class AuditEvent(SQLModel, table=True):
    __tablename__ = "audit_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    actor_id: Optional[int] = Field(default=None, index=True)
    action: str = Field(max_length=50)
    table_name: str = Field(max_length=100)
    record_id: Optional[int] = Field(default=None, index=True)
    before: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    after: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    context: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict),
    )
    timestamp: datetime = Field(default_factory=utcnow, sa_type=DateTime(), index=True)
