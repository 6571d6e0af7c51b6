from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import DateTime
from sqlmodel import Session, SQLModel

from hospital.models import Bed, BedOccupancyRecord, User
from hospital.models.base import as_naive_utc, utcnow


def _datetime_columns():
    for table in SQLModel.metadata.sorted_tables:
        for column in table.columns:
            try:
                python_type = column.type.python_type
            except NotImplementedError:
                continue
            if python_type is datetime:
                yield table.name, column


def test_datetime_columns_use_plain_sqlalchemy_datetime() -> None:
    columns = list(_datetime_columns())
    assert ("appointments", "start_time") in {(name, column.name) for name, column in columns}
    for table_name, column in columns:
        assert type(column.type) is DateTime, f"{table_name}.{column.name} is {type(column.type).__name__}"


def test_naive_utc_conversion() -> None:
    aware = datetime(2024, 1, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))
    assert as_naive_utc(aware) == datetime(2024, 1, 1, 8, 0)
    assert as_naive_utc(datetime(2024, 1, 1, 8, 0)) == datetime(2024, 1, 1, 8, 0)
    assert as_naive_utc(None) is None
    assert utcnow().tzinfo is None


def test_naive_timestamps_round_trip(session: Session, patient: int) -> None:
    stamp = datetime(2024, 5, 1, 8, 30)
    user = User(
        email="nurse@hospital.local",
        password_hash="!",
        role="nursing",
        first_name="Nina",
        last_name="Nurse",
        last_login_at=stamp,
    )
    bed = Bed(number="9", floor=2, state="occupied", current_patient_id=patient, assigned_at=stamp)
    session.add(user)
    session.add(bed)
    session.commit()
    session.add(BedOccupancyRecord(bed_id=bed.id, patient_id=patient, entered_at=stamp))
    session.commit()

    session.expire_all()
    assert session.get(User, user.id).last_login_at == stamp
    assert session.get(Bed, bed.id).assigned_at == stamp
