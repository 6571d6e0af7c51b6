from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import Callable, Dict, Iterator, List

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[3]
BACKEND_ROOT = PROJECT_ROOT / "backend"

if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from sqlalchemy.engine import Engine  # noqa: E402
from sqlmodel import Session  # noqa: E402

from hospital.core.config import Settings  # noqa: E402
from hospital.db.session import build_engine, init_db  # noqa: E402
from hospital.models import User  # noqa: E402
from hospital.schemas import DoctorCreate, PatientCreate  # noqa: E402
from hospital.services import create_doctor, create_patient  # noqa: E402
from hospital.services.audit import AuditRecord, AuditSink  # noqa: E402


class RecordingAuditSink(AuditSink):
    def __init__(self) -> None:
        self.records: List[AuditRecord] = []

    def emit(self, record: AuditRecord) -> None:
        self.records.append(record)

    def actions(self, table_name: str) -> List[str]:
        return [record.action for record in self.records if record.table_name == table_name]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'hospital-test.db'}",
        jwt_secret_key="test-secret",
        log_level="WARNING",
    )


@pytest.fixture
def engine(settings: Settings) -> Iterator[Engine]:
    db_engine = build_engine(settings)
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Iterator[Session]:
    with Session(engine) as db_session:
        yield db_session


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def staff_user(session: Session) -> User:
    user = User(
        email="reception@hospital.local",
        password_hash="!",
        role="reception",
        first_name="Rita",
        last_name="Reception",
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def make_patient(session: Session) -> Callable[..., int]:
    counter = {"value": 0}

    def _make(**overrides) -> int:
        counter["value"] += 1
        values = {
            "national_id": f"PID-{counter['value']:04d}",
            "first_name": "Ana",
            "last_name": f"Patient{counter['value']}",
            "date_of_birth": date(1985, 3, 14),
        }
        values.update(overrides)
        return create_patient(session, data=PatientCreate(**values), actor_id=None).id

    return _make


@pytest.fixture
def patient(make_patient: Callable[..., int]) -> int:
    return make_patient()


@pytest.fixture
def doctor(session: Session, settings: Settings) -> int:
    created = create_doctor(
        session,
        data=DoctorCreate(
            first_name="Gregory",
            last_name="House",
            specialty="Diagnostics",
            licence_number="LIC-0001",
        ),
        settings=settings,
        actor_id=None,
    )
    return created.id


# -- API -------------------------------------------------------------------


@pytest.fixture
def client(settings: Settings):
    pytest.importorskip("httpx")
    from fastapi.testclient import TestClient

    from hospital.main import create_app

    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


def _login(client, email: str, password: str) -> Dict[str, str]:
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client, settings: Settings) -> Dict[str, str]:
    return _login(client, settings.first_superuser_email, settings.first_superuser_password)


@pytest.fixture
def headers_for(client, admin_headers: Dict[str, str]) -> Callable[[str], Dict[str, str]]:
    """Create a user with ``role`` through the API and return its auth headers."""

    def _headers(role: str) -> Dict[str, str]:
        email = f"{role}@hospital.local"
        response = client.post(
            "/api/v1/auth/users",
            json={
                "email": email,
                "password": f"{role}-pass",
                "role": role,
                "first_name": role.title(),
                "last_name": "Staff",
            },
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return _login(client, email, f"{role}-pass")

    return _headers
