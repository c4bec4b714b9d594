from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from threading import RLock
from typing import Any, Dict, List, Optional

from .errors import InvalidTaskIdError
from .models import TaskEntity, is_valid_task_id, new_task_id, next_timestamp, utc_now, validate_entity
from .schemas import TaskCreate, TaskUpdate
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


def check_task_id(task_id: Any) -> str:
    """Return ``task_id`` unchanged or raise InvalidTaskIdError."""
    if not is_valid_task_id(task_id):
        raise InvalidTaskIdError(task_id)
    return task_id


def build_entity(data: TaskCreate) -> TaskEntity:
    """Turn a create payload into a complete, validated record with id and timestamps."""
    now = utc_now()
    entity: TaskEntity = {
        "id": new_task_id(),
        "title": data.title,
        "description": data.description,
        "category": data.category,
        "priority": data.priority.value,
        "is_completed": data.is_completed,
        "due_date": data.due_date,
        "created_at": now,
        "updated_at": now,
    }
    validate_entity(entity)
    return entity


def apply_update(current: TaskEntity, data: TaskUpdate) -> TaskEntity:
    """
    Return a copy of ``current`` with the fields sent in ``data`` replaced and
    ``updated_at`` refreshed. ``id`` and ``created_at`` are never touched.
    """
    updated: Dict[str, Any] = dict(current)
    for name, value in data.changes().items():
        if name == "priority" and value is not None:
            value = value.value
        updated[name] = value
    updated["updated_at"] = next_timestamp(current["updated_at"])
    validate_entity(updated)
    return updated  # type: ignore[return-value]


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for task storage backends."""

    name: str = "abstract"

    @abstractmethod
    def create(self, data: TaskCreate) -> TaskEntity:
        """Create and return a new TaskEntity with id and timestamps assigned."""

    @abstractmethod
    def list_all(self) -> List[TaskEntity]:
        """Return every stored TaskEntity in the store's natural order."""

    @abstractmethod
    def update_by_id(self, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        """Update fields of an existing TaskEntity. Return the updated entity or None if not found."""

    @abstractmethod
    def delete_by_id(self, task_id: str) -> None:
        """Delete a TaskEntity by id. Unknown ids are ignored."""

    def close(self) -> None:
        """Release backend resources. Default: nothing to release."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    name = "memory"

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, TaskEntity] = {}

    def create(self, data: TaskCreate) -> TaskEntity:
        entity = build_entity(data)
        with self._lock:
            self._items[entity["id"]] = entity
        logger.debug("Created task %s", entity["id"])
        return entity.copy()  # type: ignore[return-value]

    def list_all(self) -> List[TaskEntity]:
        with self._lock:
            # Return copies to avoid external mutation
            return [t.copy() for t in self._items.values()]  # type: ignore[misc]

    def update_by_id(self, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        check_task_id(task_id)
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                logger.debug("Update of unknown task %s ignored", task_id)
                return None
            updated = apply_update(existing, data)
            self._items[task_id] = updated
            return updated.copy()  # type: ignore[return-value]

    def delete_by_id(self, task_id: str) -> None:
        check_task_id(task_id)
        with self._lock:
            removed = self._items.pop(task_id, None)
        if removed is not None:
            logger.debug("Deleted task %s", task_id)


# PUBLIC_INTERFACE
def get_repository(settings: Optional[Settings] = None) -> Repository:
    """
    Factory to return the configured repository based on settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository at settings.sqlite_db_path
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        logger.info("Using sqlite task store at %s", settings.sqlite_db_path)
        return SQLiteRepository(settings.sqlite_db_path)
    logger.info("Using in-memory task store")
    return InMemoryRepository()
