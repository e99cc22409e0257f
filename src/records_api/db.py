from __future__ import annotations

import os
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, List, Optional

import structlog
from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    event,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine, Row, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from .models import RecordEntity, RecordPriority, RecordStatus, is_storable_id
from .repositories import Repository, StorageUnavailable
from .schemas import RecordCreate

logger = structlog.get_logger(__name__)

metadata = MetaData()

records_table = Table(
    "records",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("description", Text, nullable=False),
    Column("status", String(32), nullable=False, server_default=RecordStatus.TODO.value),
    Column("priority", String(32), nullable=False, server_default=RecordPriority.MEDIUM.value),
    Column("created_at", DateTime, nullable=False),
    # AUTOINCREMENT keeps SQLite from handing out the id of a deleted max row again
    sqlite_autoincrement=True,
)


def _is_memory_sqlite(database: Optional[str]) -> bool:
    return not database or database == ":memory:" or database.startswith("file::memory:")


def _unicode_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


# PUBLIC_INTERFACE
def create_records_engine(database_url: str, *, pool_size: int = 10, pool_timeout: float = 5.0) -> Engine:
    """
    Create a SQLAlchemy engine with a bounded connection pool.

    Parameters
    ----------
    database_url:
        Any SQLAlchemy URL (``sqlite:///./data/records.db``, ``postgresql://...``).
    pool_size:
        Maximum number of connections held at once. There is no overflow.
    pool_timeout:
        Seconds to wait for a free connection; SQLite also uses it as its lock wait.
    """
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(
            url,
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
        )

    connect_args: dict[str, Any] = {"check_same_thread": False, "timeout": pool_timeout}
    in_memory = _is_memory_sqlite(url.database)
    if in_memory:
        # A private in-memory database exists per connection, so share exactly one
        engine = create_engine(url, connect_args=connect_args, poolclass=StaticPool)
    else:
        os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)
        engine = create_engine(
            url,
            connect_args=connect_args,
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=pool_timeout,
        )

    @event.listens_for(engine, "connect")
    def _on_sqlite_connect(dbapi_connection: Any, _rec: Any) -> None:
        # SQLite's built-in lower() only folds ASCII
        dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)
        if not in_memory:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


class DatabaseRepository(Repository):
    """
    Transactional relational repository implementing the Repository interface.

    Every operation runs in its own transaction on a pooled connection.
    Update and delete use the affected-row count of the mutating statement
    as their existence check, so check and mutation cannot be split by a
    concurrent writer.
    """

    def __init__(self, database_url: str, *, pool_size: int = 10, pool_timeout: float = 5.0) -> None:
        self._engine = create_records_engine(database_url, pool_size=pool_size, pool_timeout=pool_timeout)
        with self._transaction("init_schema") as conn:
            metadata.create_all(conn, checkfirst=True)

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def _transaction(self, operation: str, record_id: Optional[int] = None) -> Iterator[Connection]:
        try:
            with self._engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.error(
                "storage_unavailable",
                operation=operation,
                record_id=record_id,
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise StorageUnavailable(operation, record_id) from exc

    def _row_to_entity(self, row: Row) -> RecordEntity:
        m = row._mapping
        return {
            "id": int(m["id"]),
            "title": str(m["title"]),
            "description": str(m["description"]),
            "status": str(m["status"]),
            "priority": str(m["priority"]),
            "created_at": m["created_at"],
        }

    def _select_one(self, conn: Connection, record_id: int) -> Optional[RecordEntity]:
        row = conn.execute(select(records_table).where(records_table.c.id == record_id)).first()
        return self._row_to_entity(row) if row is not None else None

    def get_records(self) -> List[RecordEntity]:
        with self._transaction("get_records") as conn:
            rows = conn.execute(select(records_table).order_by(records_table.c.id.asc())).all()
            return [self._row_to_entity(r) for r in rows]

    def get_record(self, record_id: int) -> Optional[RecordEntity]:
        if not is_storable_id(record_id):
            return None
        with self._transaction("get_record", record_id) as conn:
            return self._select_one(conn, record_id)

    def create_record(self, data: RecordCreate) -> RecordEntity:
        with self._transaction("create_record") as conn:
            result = conn.execute(
                insert(records_table).values(
                    title=data.title,
                    description=data.description,
                    status=data.status,
                    priority=data.priority,
                    created_at=datetime.now(),
                )
            )
            new_id = result.inserted_primary_key[0]
            entity = self._select_one(conn, new_id)
        assert entity is not None
        logger.info("record_created", record_id=entity["id"], backend="database")
        return entity

    def update_record(self, record_id: int, data: RecordCreate) -> Optional[RecordEntity]:
        if not is_storable_id(record_id):
            return None
        with self._transaction("update_record", record_id) as conn:
            result = conn.execute(
                update(records_table)
                .where(records_table.c.id == record_id)
                .values(
                    title=data.title,
                    description=data.description,
                    status=data.status,
                    priority=data.priority,
                )
            )
            if result.rowcount == 0:
                return None
            return self._select_one(conn, record_id)

    def delete_record(self, record_id: int) -> bool:
        if not is_storable_id(record_id):
            return False
        with self._transaction("delete_record", record_id) as conn:
            result = conn.execute(delete(records_table).where(records_table.c.id == record_id))
            removed = result.rowcount > 0
        if removed:
            logger.info("record_deleted", record_id=record_id, backend="database")
        return removed

    def search_records(self, query: str) -> List[RecordEntity]:
        s = (query or "").strip()
        if not s:
            return self.get_records()
        with self._transaction("search_records") as conn:
            rows = conn.execute(
                select(records_table)
                .where(func.lower(records_table.c.title).contains(s.lower(), autoescape=True))
                .order_by(records_table.c.id.asc())
            ).all()
            return [self._row_to_entity(r) for r in rows]

    def close(self) -> None:
        self._engine.dispose()
