from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from hospital.api.deps import (
    AuthenticatedUser,
    get_audit_context,
    get_audit_sink,
    get_current_user,
    get_db,
    get_settings_dependency,
    require_permission,
    to_http_exception,
)
from hospital.core.config import Settings
from hospital.core.errors import ServiceError
from hospital.schemas import LoginRequest, TokenResponse, UserCreate, UserRead
from hospital.services import (
    AuthenticationError,
    authenticate_user,
    create_token_response,
    create_user,
    list_users,
)
from hospital.services.audit import AuditSink

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    session: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
) -> TokenResponse:
    if not payload.email or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")
    try:
        user = authenticate_user(session, payload.email, payload.password)
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials") from exc
    return create_token_response(settings, user)


@router.get("/me", response_model=UserRead)
def read_current_user(current: AuthenticatedUser = Depends(get_current_user)) -> UserRead:
    return UserRead.model_validate(current.user)


@router.get("/users", response_model=List[UserRead])
def list_user_accounts(
    role: str | None = None,
    active: bool = True,
    session: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_permission("users:read")),
) -> List[UserRead]:
    return list_users(session, role=role, active=active)


@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user_account(
    payload: UserCreate,
    session: Session = Depends(get_db),
    current: AuthenticatedUser = Depends(require_permission("users:write")),
    audit_sink: AuditSink = Depends(get_audit_sink),
    context: dict = Depends(get_audit_context),
) -> UserRead:
    try:
        return create_user(session, data=payload, actor_id=current.id, audit_sink=audit_sink, context=context)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
