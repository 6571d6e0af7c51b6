from __future__ import annotations


from dataclasses import dataclass
from typing import Callable, Iterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from hospital.core.config import Settings
from hospital.core.errors import ConflictError, NotFoundError, PersistenceError, ServiceError, ValidationError
from hospital.core.permissions import PERMISSIONS, is_allowed
from hospital.models import User
from hospital.services import AppointmentScheduler, BedOccupancyManager, security
from hospital.services.audit import AuditSink

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


@dataclass
class AuthenticatedUser:
    user: User
    role: str

    @property
    def id(self) -> int:
        return self.user.id


def get_settings_dependency(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Iterator[Session]:
    with Session(request.app.state.engine) as session:
        yield session


def get_audit_sink(request: Request) -> AuditSink:
    return request.app.state.audit_sink


@dataclass
class PageParams:
    page: int
    page_size: int


def get_page_params(
    page: int = 1,
    page_size: int = 25,
    settings: Settings = Depends(get_settings_dependency),
) -> PageParams:
    """Clamp paging query parameters to ``1..max_page_size``."""
    return PageParams(page=max(page, 1), page_size=min(max(page_size, 1), settings.max_page_size))


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
) -> AuthenticatedUser:
    try:
        payload = security.decode_token(settings, token)
    except Exception as exc:  # noqa: BLE001
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if subject is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    try:
        user_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload") from exc

    user = session.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")
    return AuthenticatedUser(user=user, role=user.role)


def require_permission(permission: str) -> Callable[..., AuthenticatedUser]:
    if permission not in PERMISSIONS:
        raise KeyError(f"Unknown permission {permission!r}")

    async def checker(current: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if not is_allowed(permission, current.role):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return current

    return checker


async def get_audit_context(request: Request, current: AuthenticatedUser = Depends(get_current_user)) -> dict:
    return {
        "ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
        "role": current.role,
        "request_path": request.url.path,
    }


def get_scheduler(
    session: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
    audit_sink: AuditSink = Depends(get_audit_sink),
) -> AppointmentScheduler:
    return AppointmentScheduler(session, settings=settings, audit_sink=audit_sink)


def get_bed_manager(
    session: Session = Depends(get_db),
    audit_sink: AuditSink = Depends(get_audit_sink),
) -> BedOccupancyManager:
    return BedOccupancyManager(session, audit_sink=audit_sink)


_STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def to_http_exception(exc: ServiceError) -> HTTPException:
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break
    return HTTPException(status_code=status_code, detail={"message": exc.message, "code": exc.code})
