from __future__ import annotations

import logging
from typing import List, Optional

from sqlmodel import Session, select

from hospital.core.config import Settings
from hospital.core.errors import ConflictError, ValidationError
from hospital.core.permissions import ADMINISTRATOR, ROLES
from hospital.db.session import transaction
from hospital.models import User
from hospital.models.base import utcnow
from hospital.schemas.auth import TokenResponse, UserCreate, UserRead
from hospital.services import audit, security

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    pass


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    statement = select(User).where(User.email == _normalize_email(email))
    return session.exec(statement).first()


def authenticate_user(session: Session, email: str, password: str) -> User:
    user = get_user_by_email(session, email)
    if not user or not user.is_active:
        raise AuthenticationError("INVALID_CREDENTIALS")
    if not security.verify_password(password, user.password_hash):
        raise AuthenticationError("INVALID_CREDENTIALS")
    with transaction(session):
        user.last_login_at = utcnow()
        session.add(user)
    session.refresh(user)
    return user


def create_token_response(settings: Settings, user: User) -> TokenResponse:
    access_token = security.create_access_token(settings, str(user.id), {"role": user.role})
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserRead.model_validate(user),
    )


def list_users(session: Session, *, role: Optional[str] = None, active: bool = True) -> List[UserRead]:
    statement = select(User).where(User.is_active == active)
    if role:
        statement = statement.where(User.role == role)
    statement = statement.order_by(User.last_name, User.first_name, User.id)
    return [UserRead.model_validate(user) for user in session.exec(statement).all()]


def create_user(
    session: Session,
    *,
    data: UserCreate,
    actor_id: Optional[int],
    audit_sink: Optional[audit.AuditSink] = None,
    context: Optional[dict] = None,
) -> UserRead:
    if data.role not in ROLES:
        raise ValidationError("INVALID_ROLE", "Invalid role")
    if not data.password:
        raise ValidationError("PASSWORD_REQUIRED", "Password is required")
    email = _normalize_email(data.email)

    with transaction(session):
        if get_user_by_email(session, email) is not None:
            raise ConflictError("EMAIL_TAKEN", "A user with this email already exists")
        user = User(
            email=email,
            password_hash=security.hash_password(data.password),
            role=data.role,
            first_name=data.first_name,
            last_name=data.last_name,
        )
        session.add(user)
        session.flush()
        user_id = user.id

    audit.emit(
        audit_sink,
        audit.AuditRecord(
            actor_id=actor_id,
            action="create",
            table_name="users",
            record_id=user_id,
            after={"email": email, "role": data.role},
            context=context or {},
        ),
    )
    session.refresh(user)
    return UserRead.model_validate(user)


def ensure_seed_data(session: Session, settings: Settings) -> None:
    if get_user_by_email(session, settings.first_superuser_email) is not None:
        return
    with transaction(session):
        session.add(
            User(
                email=_normalize_email(settings.first_superuser_email),
                password_hash=security.hash_password(settings.first_superuser_password),
                role=ADMINISTRATOR,
                first_name="System",
                last_name="Administrator",
            )
        )
    logger.info("Created initial administrator %s", settings.first_superuser_email)


__all__ = [
    "authenticate_user",
    "create_token_response",
    "create_user",
    "ensure_seed_data",
    "get_user_by_email",
    "list_users",
    "AuthenticationError",
]
