from __future__ import annotations

from fastapi import APIRouter, Depends, status

from hospital.api.deps import (
    AuthenticatedUser,
    get_audit_context,
    get_bed_manager,
    require_permission,
    to_http_exception,
)
from hospital.core.errors import ServiceError
from hospital.schemas import (
    BedAssignRequest,
    BedCreate,
    BedDetail,
    BedListResponse,
    BedRead,
    BedReleaseRequest,
    BedUpdate,
    MessageResponse,
)
from hospital.services import BedOccupancyManager

router = APIRouter(prefix="/beds", tags=["beds"])


@router.get("/", response_model=BedListResponse)
def list_bed_records(
    state: str | None = None,
    type: str | None = None,
    floor: int | None = None,
    manager: BedOccupancyManager = Depends(get_bed_manager),
    _: AuthenticatedUser = Depends(require_permission("beds:read")),
) -> BedListResponse:
    return manager.list_beds(state=state, bed_type=type, floor=floor)


@router.post("/", response_model=BedRead, status_code=status.HTTP_201_CREATED)
def create_bed_record(
    payload: BedCreate,
    manager: BedOccupancyManager = Depends(get_bed_manager),
    current: AuthenticatedUser = Depends(require_permission("beds:write")),
    context: dict = Depends(get_audit_context),
) -> BedRead:
    try:
        return manager.create_bed(payload, actor_id=current.id, context=context)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{bed_id}", response_model=BedDetail)
def get_bed_record(
    bed_id: int,
    manager: BedOccupancyManager = Depends(get_bed_manager),
    _: AuthenticatedUser = Depends(require_permission("beds:read")),
) -> BedDetail:
    try:
        return manager.get_bed(bed_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{bed_id}", response_model=BedRead)
def update_bed_record(
    bed_id: int,
    payload: BedUpdate,
    manager: BedOccupancyManager = Depends(get_bed_manager),
    current: AuthenticatedUser = Depends(require_permission("beds:write")),
    context: dict = Depends(get_audit_context),
) -> BedRead:
    try:
        return manager.update_bed(bed_id, payload, actor_id=current.id, context=context)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{bed_id}", response_model=MessageResponse)
def delete_bed_record(
    bed_id: int,
    manager: BedOccupancyManager = Depends(get_bed_manager),
    current: AuthenticatedUser = Depends(require_permission("beds:write")),
    context: dict = Depends(get_audit_context),
) -> MessageResponse:
    try:
        manager.delete(bed_id, actor_id=current.id, context=context)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return MessageResponse(detail="Bed deleted")


@router.post("/{bed_id}/assign", response_model=BedRead)
def assign_bed(
    bed_id: int,
    payload: BedAssignRequest,
    manager: BedOccupancyManager = Depends(get_bed_manager),
    current: AuthenticatedUser = Depends(require_permission("beds:write")),
    context: dict = Depends(get_audit_context),
) -> BedRead:
    try:
        return manager.assign(
            bed_id,
            patient_id=payload.patient_id,
            reason=payload.reason,
            actor_id=current.id,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{bed_id}/release", response_model=BedRead)
def release_bed(
    bed_id: int,
    payload: BedReleaseRequest | None = None,
    manager: BedOccupancyManager = Depends(get_bed_manager),
    current: AuthenticatedUser = Depends(require_permission("beds:write")),
    context: dict = Depends(get_audit_context),
) -> BedRead:
    try:
        return manager.release(
            bed_id,
            reason=payload.reason if payload else None,
            actor_id=current.id,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{bed_id}/available", response_model=BedRead)
def mark_bed_available(
    bed_id: int,
    manager: BedOccupancyManager = Depends(get_bed_manager),
    current: AuthenticatedUser = Depends(require_permission("beds:write")),
    context: dict = Depends(get_audit_context),
) -> BedRead:
    try:
        return manager.mark_available(bed_id, actor_id=current.id, context=context)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
