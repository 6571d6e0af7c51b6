from __future__ import annotations

import csv
import io
import json
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlmodel import Session

from hospital.api.deps import AuthenticatedUser, PageParams, get_db, get_page_params, require_permission
from hospital.models import AuditEvent
from hospital.schemas import AuditEventRead, Pagination
from hospital.services import audit

router = APIRouter(prefix="/audit", tags=["audit"])

CSV_COLUMNS = ["id", "timestamp", "actor_id", "action", "table_name", "record_id", "before", "after", "context"]


@router.get("/", response_model=Pagination[AuditEventRead])
def list_audit_events(
    paging: PageParams = Depends(get_page_params),
    table_name: str | None = None,
    record_id: int | None = None,
    actor_id: int | None = None,
    action: str | None = None,
    from_ts: datetime | None = None,
    to_ts: datetime | None = None,
    format: str | None = None,
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("audit:read")),
):
    items, total = audit.query_events(
        session,
        table_name=table_name,
        record_id=record_id,
        actor_id=actor_id,
        action=action,
        from_ts=from_ts,
        to_ts=to_ts,
        page=paging.page,
        page_size=paging.page_size,
    )
    events = [AuditEventRead.model_validate(item) for item in items]

    if format is not None:
        if format.lower() != "csv":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unsupported format. Available options: csv",
            )
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(CSV_COLUMNS)
        for event in events:
            writer.writerow(
                [
                    event.id,
                    event.timestamp.isoformat(),
                    event.actor_id,
                    event.action,
                    event.table_name,
                    event.record_id,
                    json.dumps(event.before, ensure_ascii=False),
                    json.dumps(event.after, ensure_ascii=False),
                    json.dumps(event.context, ensure_ascii=False),
                ]
            )
        return Response(
            content=output.getvalue(),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=audit-events.csv"},
        )

    return Pagination[AuditEventRead](items=events, page=paging.page, page_size=paging.page_size, total=total)


@router.get("/{audit_id}", response_model=AuditEventRead)
def get_audit_event(
    audit_id: int,
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("audit:read")),
) -> AuditEventRead:
    event = session.get(AuditEvent, audit_id)
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Audit event not found")
    return AuditEventRead.model_validate(event)
