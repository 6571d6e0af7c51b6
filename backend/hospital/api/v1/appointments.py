from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, status

from hospital.api.deps import (
    AuthenticatedUser,
    PageParams,
    get_audit_context,
    get_page_params,
    get_scheduler,
    require_permission,
    to_http_exception,
)
from hospital.core.errors import ServiceError
from hospital.schemas import (
    AppointmentCancelRequest,
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatusUpdate,
    AppointmentSummary,
    AppointmentUpdate,
    DoctorAvailability,
    Pagination,
)
from hospital.services import AppointmentScheduler

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("/availability", response_model=DoctorAvailability)
def get_doctor_availability(
    doctor_id: int,
    date: date,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    _: AuthenticatedUser = Depends(require_permission("appointments:read")),
) -> DoctorAvailability:
    try:
        return scheduler.get_availability(doctor_id, date)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/", response_model=Pagination[AppointmentSummary])
def list_appointment_records(
    paging: PageParams = Depends(get_page_params),
    doctor_id: int | None = None,
    patient_id: int | None = None,
    status: str | None = None,
    start_from: datetime | None = None,
    end_to: datetime | None = None,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    _: AuthenticatedUser = Depends(require_permission("appointments:read")),
) -> Pagination[AppointmentSummary]:
    items, total = scheduler.list_appointments(
        page=paging.page,
        page_size=paging.page_size,
        doctor_id=doctor_id,
        patient_id=patient_id,
        status=status,
        start_from=start_from,
        end_to=end_to,
    )
    return Pagination[AppointmentSummary](items=items, page=paging.page, page_size=paging.page_size, total=total)


@router.post("/", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
def create_appointment_record(
    payload: AppointmentCreate,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    current: AuthenticatedUser = Depends(require_permission("appointments:write")),
    context: dict = Depends(get_audit_context),
) -> AppointmentRead:
    try:
        return scheduler.create_appointment(payload, actor_id=current.id, context=context)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{appointment_id}", response_model=AppointmentRead)
def get_appointment_record(
    appointment_id: int,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    _: AuthenticatedUser = Depends(require_permission("appointments:read")),
) -> AppointmentRead:
    try:
        return scheduler.get_appointment(appointment_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{appointment_id}", response_model=AppointmentRead)
def update_appointment_record(
    appointment_id: int,
    payload: AppointmentUpdate,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    current: AuthenticatedUser = Depends(require_permission("appointments:write")),
    context: dict = Depends(get_audit_context),
) -> AppointmentRead:
    try:
        return scheduler.update_appointment(appointment_id, payload, actor_id=current.id, context=context)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/{appointment_id}/status", response_model=AppointmentRead)
def update_appointment_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    current: AuthenticatedUser = Depends(require_permission("appointments:write")),
    context: dict = Depends(get_audit_context),
) -> AppointmentRead:
    try:
        return scheduler.update_appointment_status(
            appointment_id,
            payload.status,
            actor_id=current.id,
            cancellation_reason=payload.cancellation_reason,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{appointment_id}", response_model=AppointmentRead)
def cancel_appointment_record(
    appointment_id: int,
    payload: AppointmentCancelRequest | None = None,
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    current: AuthenticatedUser = Depends(require_permission("appointments:cancel")),
    context: dict = Depends(get_audit_context),
) -> AppointmentRead:
    try:
        return scheduler.cancel_appointment(
            appointment_id,
            actor_id=current.id,
            cancellation_reason=payload.cancellation_reason if payload else None,
            context=context,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
