from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import SQLModel, Session, create_engine

from hospital.core.config import Settings
from hospital.core.errors import ConflictError, PersistenceError, ServiceError

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> Engine:
    connect_args = {}
    if settings.database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": settings.sqlite_busy_timeout}
    return create_engine(settings.database_url, echo=False, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    import hospital.models  # noqa: F401  registers every table on the metadata

    SQLModel.metadata.create_all(engine)


@contextmanager
def open_session(engine: Engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session


def lock_row(session: Session, table_name: str, row_id: int) -> None:
    """Take the write lock that guards ``row_id`` in ``table_name``.

    Callers follow this with their `SELECT ... FOR UPDATE`, which holds the
    row on PostgreSQL. SQLite ignores FOR UPDATE, so there a no-op UPDATE
    claims the database write lock first. A concurrent writer then waits in
    the busy handler until this transaction ends and reads what it committed.
    """
    if session.get_bind().dialect.name != "sqlite":
        return
    session.execute(text(f"UPDATE {table_name} SET id = id WHERE id = :row_id"), {"row_id": row_id})


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Run a block as one unit of work on ``session``.

    Commits when the block finishes. Any exception rolls back everything the
    block wrote before it propagates. Service errors pass through untouched,
    integrity violations surface as ``ConflictError`` and every other store
    failure as ``PersistenceError``.
    """
    try:
        yield session
        session.commit()
    except ServiceError:
        session.rollback()
        raise
    except IntegrityError as exc:
        session.rollback()
        logger.info("Integrity violation rolled back: %s", exc.orig)
        raise ConflictError("INTEGRITY_VIOLATION", "Record conflicts with an existing one") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Persistence failure, transaction rolled back", exc_info=True)
        raise PersistenceError("PERSISTENCE_FAILURE", "Database operation failed") from exc
    except Exception:
        session.rollback()
        raise
