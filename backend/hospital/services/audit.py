"""Best-effort audit trail.

Services hand an :class:`AuditRecord` to an :class:`AuditSink` once their
transaction has committed. Delivery is fire-and-forget: a sink never raises
into the caller and a lost audit row never undoes the primary operation.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Set, Tuple

from pydantic_core import to_jsonable_python
from sqlalchemy import func
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, select

from hospital.models import AuditEvent
from hospital.models.base import as_naive_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class AuditRecord:
    actor_id: Optional[int]
    action: str
    table_name: str
    record_id: Optional[int]
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    context: Dict[str, Any] = field(default_factory=dict)


class AuditSink:
    def emit(self, record: AuditRecord) -> None:
        raise NotImplementedError

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every record emitted so far has been handled."""

    def close(self) -> None:
        self.flush()


class NullAuditSink(AuditSink):
    def emit(self, record: AuditRecord) -> None:
        return None


class DatabaseAuditSink(AuditSink):
    """Writes audit rows from a single background worker, one session per row."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="audit")
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

    def emit(self, record: AuditRecord) -> None:
        try:
            future = self._executor.submit(self._write, record)
        except RuntimeError:
            logger.warning("Audit sink closed, dropping %s on %s", record.action, record.table_name)
            return
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def flush(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _write(self, record: AuditRecord) -> None:
        try:
            with Session(self._engine) as session:
                session.add(
                    AuditEvent(
                        actor_id=record.actor_id,
                        action=record.action,
                        table_name=record.table_name,
                        record_id=record.record_id,
                        before=record.before,
                        after=record.after,
                        context=record.context,
                        timestamp=utcnow(),
                    )
                )
                session.commit()
        except Exception:  # noqa: BLE001
            logger.warning(
                "Failed to store audit event %s on %s/%s",
                record.action,
                record.table_name,
                record.record_id,
                exc_info=True,
            )


NULL_SINK = NullAuditSink()


def emit(sink: Optional[AuditSink], record: AuditRecord) -> None:
    if sink is None:
        return
    try:
        sink.emit(record)
    except Exception:  # noqa: BLE001
        logger.warning("Audit sink rejected %s on %s", record.action, record.table_name, exc_info=True)


def snapshot(instance: SQLModel) -> Dict[str, Any]:
    mapper = sa_inspect(instance).mapper
    return {
        attr.key: to_jsonable_python(getattr(instance, attr.key))
        for attr in mapper.column_attrs
    }


def query_events(
    session: Session,
    *,
    table_name: Optional[str] = None,
    record_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    action: Optional[str] = None,
    from_ts: Optional[datetime] = None,
    to_ts: Optional[datetime] = None,
    page: int = 1,
    page_size: int = 25,
) -> Tuple[Iterable[AuditEvent], int]:
    from_ts, to_ts = as_naive_utc(from_ts), as_naive_utc(to_ts)
    statement = select(AuditEvent)
    count_stmt = select(func.count()).select_from(AuditEvent)

    def apply_filters(stmt):
        if table_name:
            stmt = stmt.where(AuditEvent.table_name == table_name)
        if record_id is not None:
            stmt = stmt.where(AuditEvent.record_id == record_id)
        if actor_id is not None:
            stmt = stmt.where(AuditEvent.actor_id == actor_id)
        if action:
            stmt = stmt.where(AuditEvent.action == action)
        if from_ts:
            stmt = stmt.where(AuditEvent.timestamp >= from_ts)
        if to_ts:
            stmt = stmt.where(AuditEvent.timestamp <= to_ts)
        return stmt

    statement = apply_filters(statement).order_by(AuditEvent.timestamp.desc(), AuditEvent.id.desc())
    count_stmt = apply_filters(count_stmt)

    total = session.exec(count_stmt).one()
    items = session.exec(
        statement.offset((page - 1) * page_size).limit(page_size)
    ).all()
    return items, total
