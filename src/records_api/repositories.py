from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from threading import RLock
from typing import List, Optional

import structlog

from .models import RecordEntity
from .schemas import RecordCreate
from .settings import Settings, get_settings

logger = structlog.get_logger(__name__)


# PUBLIC_INTERFACE
class StorageUnavailable(Exception):
    """
    The backing medium could not be reached or the operation could not
    complete. A missing record is never reported this way.
    """

    def __init__(self, operation: str, record_id: Optional[int] = None) -> None:
        self.operation = operation
        self.record_id = record_id
        target = "" if record_id is None else f" (record {record_id})"
        super().__init__(f"Storage unavailable during {operation}{target}")


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for record storage backends."""

    @abstractmethod
    def get_records(self) -> List[RecordEntity]:
        """Return all records ordered by ascending id."""

    @abstractmethod
    def get_record(self, record_id: int) -> Optional[RecordEntity]:
        """Return a RecordEntity by id, or None if not found."""

    @abstractmethod
    def create_record(self, data: RecordCreate) -> RecordEntity:
        """Create and return a new RecordEntity with a fresh id and created_at."""

    @abstractmethod
    def update_record(self, record_id: int, data: RecordCreate) -> Optional[RecordEntity]:
        """
        Replace title, description, status and priority of an existing record.
        Return the updated entity, or None if not found (no upsert).
        """

    @abstractmethod
    def delete_record(self, record_id: int) -> bool:
        """Delete a RecordEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def search_records(self, query: str) -> List[RecordEntity]:
        """
        Return records whose title contains query, case-insensitively, in the
        same order as get_records(). A blank query matches everything.
        """

    def close(self) -> None:
        """Release any resources held by the backend."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[int, RecordEntity] = {}
        self._next_id = 1

    def _now(self) -> datetime:
        return datetime.now()

    def _allocate_id(self) -> int:
        with self._lock:
            i = self._next_id
            self._next_id += 1
            return i

    def _sorted(self) -> List[RecordEntity]:
        return [self._items[k].copy() for k in sorted(self._items)]

    def get_records(self) -> List[RecordEntity]:
        with self._lock:
            return self._sorted()

    def get_record(self, record_id: int) -> Optional[RecordEntity]:
        with self._lock:
            item = self._items.get(record_id)
            return None if item is None else item.copy()

    def create_record(self, data: RecordCreate) -> RecordEntity:
        with self._lock:
            entity: RecordEntity = {
                "id": self._allocate_id(),
                "title": data.title,
                "description": data.description,
                "status": data.status,
                "priority": data.priority,
                "created_at": self._now(),
            }
            self._items[entity["id"]] = entity
        logger.info("record_created", record_id=entity["id"], backend="memory")
        return entity.copy()

    def update_record(self, record_id: int, data: RecordCreate) -> Optional[RecordEntity]:
        with self._lock:
            existing = self._items.get(record_id)
            if existing is None:
                return None

            updated = existing.copy()
            updated["title"] = data.title
            updated["description"] = data.description
            updated["status"] = data.status
            updated["priority"] = data.priority

            self._items[record_id] = updated
            return updated.copy()

    def delete_record(self, record_id: int) -> bool:
        with self._lock:
            removed = self._items.pop(record_id, None) is not None
        if removed:
            logger.info("record_deleted", record_id=record_id, backend="memory")
        return removed

    def search_records(self, query: str) -> List[RecordEntity]:
        s = (query or "").strip().lower()
        with self._lock:
            if not s:
                return self._sorted()
            return [t for t in self._sorted() if s in t["title"].lower()]


# PUBLIC_INTERFACE
def build_repository(settings: Optional[Settings] = None) -> Repository:
    """
    Factory to return the configured repository based on settings.
    - memory: InMemoryRepository
    - database: DatabaseRepository over settings.database_url
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "database":
        from .db import DatabaseRepository

        return DatabaseRepository(
            settings.database_url,
            pool_size=settings.db_pool_size,
            pool_timeout=settings.db_pool_timeout,
        )
    return InMemoryRepository()
