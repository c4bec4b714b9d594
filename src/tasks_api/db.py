from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Generator, List, Optional

from .errors import PersistenceError
from .models import TaskEntity
from .repositories import Repository, apply_update, build_entity, check_task_id
from .schemas import TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    category: str = "category"
    priority: str = "priority"
    is_completed: str = "is_completed"
    due_date: str = "due_date"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()


def _dt_to_text(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _text_to_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value is not None else None


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.

    A connection is opened per operation and committed when the operation
    returns, so every create/update/delete is atomic on its own.
    """

    name = "sqlite"

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        try:
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create database directory for {db_path}: {e}") from e
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as e:
            logger.error("Cannot open task database %s: %s", self._db_path, e)
            raise PersistenceError(f"Cannot open task database: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Task database operation failed: %s", e)
            raise PersistenceError(str(e)) from e
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.title} TEXT NOT NULL CHECK (length(trim({_COLS.title})) > 0),
                    {_COLS.description} TEXT NULL,
                    {_COLS.category} TEXT NULL,
                    {_COLS.priority} TEXT NOT NULL DEFAULT 'Low'
                        CHECK ({_COLS.priority} IN ('High', 'Medium', 'Low')),
                    {_COLS.is_completed} INTEGER NOT NULL DEFAULT 0,
                    {_COLS.due_date} TEXT NULL,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": str(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description],
            "category": row[_COLS.category],
            "priority": str(row[_COLS.priority]),
            "is_completed": bool(row[_COLS.is_completed]),
            "due_date": _text_to_dt(row[_COLS.due_date]),
            "created_at": _text_to_dt(row[_COLS.created_at]),  # type: ignore
            "updated_at": _text_to_dt(row[_COLS.updated_at]),  # type: ignore
        }

    def _select(self, conn: sqlite3.Connection, task_id: str) -> Optional[TaskEntity]:
        row = conn.execute(f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,)).fetchone()
        return self._row_to_entity(row) if row else None

    def create(self, data: TaskCreate) -> TaskEntity:
        entity = build_entity(data)
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.title}, {_COLS.description}, {_COLS.category},
                    {_COLS.priority}, {_COLS.is_completed}, {_COLS.due_date}, {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entity["id"],
                    entity["title"],
                    entity["description"],
                    entity["category"],
                    entity["priority"],
                    1 if entity["is_completed"] else 0,
                    _dt_to_text(entity["due_date"]),
                    _dt_to_text(entity["created_at"]),
                    _dt_to_text(entity["updated_at"]),
                ),
            )
            row = self._select(conn, entity["id"])
        if row is None:
            raise PersistenceError(f"Task {entity['id']} was not stored")
        logger.debug("Created task %s", entity["id"])
        return row

    def list_all(self) -> List[TaskEntity]:
        with self._conn() as conn:
            rows = conn.execute(f"SELECT * FROM {_COLS.table} ORDER BY rowid").fetchall()
            return [self._row_to_entity(r) for r in rows]

    def update_by_id(self, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        check_task_id(task_id)
        with self._conn() as conn:
            # Hold the write lock between the read and the write
            conn.execute("BEGIN IMMEDIATE")
            current = self._select(conn, task_id)
            if current is None:
                logger.debug("Update of unknown task %s ignored", task_id)
                return None
            updated = apply_update(current, data)
            conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.title} = ?, {_COLS.description} = ?, {_COLS.category} = ?, {_COLS.priority} = ?,
                    {_COLS.is_completed} = ?, {_COLS.due_date} = ?, {_COLS.updated_at} = ?
                WHERE {_COLS.id} = ?
                """,
                (
                    updated["title"],
                    updated["description"],
                    updated["category"],
                    updated["priority"],
                    1 if updated["is_completed"] else 0,
                    _dt_to_text(updated["due_date"]),
                    _dt_to_text(updated["updated_at"]),
                    task_id,
                ),
            )
            return self._select(conn, task_id)

    def delete_by_id(self, task_id: str) -> None:
        check_task_id(task_id)
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,))
            if cur.rowcount > 0:
                logger.debug("Deleted task %s", task_id)
